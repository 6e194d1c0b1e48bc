"""Template-facing view-model builders."""
