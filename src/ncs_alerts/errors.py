"""Error taxonomy for the alert pipeline."""


class NcsAlertsError(Exception):
    """Base class for all ncs_alerts errors."""


class ConfigurationError(NcsAlertsError):
    """Fatal: raised before any network activity is attempted."""


class EndpointUnreachable(NcsAlertsError):
    """Every (api version, filter) combination failed for one endpoint."""

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint
        self.message = message


class MalformedResponse(EndpointUnreachable):
    """HTTP succeeded but the body could not be parsed into a record page."""


class UnparseableArtifactName(NcsAlertsError):
    """A directory under the artifacts root has no parseable run timestamp."""


class ArtifactExistsError(NcsAlertsError):
    """A run directory already exists; published runs are never overwritten."""
