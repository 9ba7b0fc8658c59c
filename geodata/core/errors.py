"""Error taxonomy shared by the scanners, the codec and the jobs."""

from typing import Optional


class GeoDataError(RuntimeError):
    """Base class for every error raised by the geo-data worker."""


class ConfigError(GeoDataError):
    """Raised when an environment variable cannot be parsed."""


class InvalidURLError(GeoDataError):
    """Raised when a request URL cannot be built or is rejected by the transport."""


class RequestFailedError(GeoDataError):
    """Raised on transport failures, including timeouts."""


class InvalidResponseError(GeoDataError):
    """Raised when the upstream answers with a non-2xx status."""

    def __init__(self, status_code: int, url: str, body: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code
        self.url = url
        self.body = body


class DecodingError(GeoDataError):
    """Raised when a payload is not JSON or does not have the expected shape."""


class MissingCredentialError(GeoDataError):
    """Raised when a scan starts without the API credential it needs."""


class FileWriteError(GeoDataError):
    """Raised when a CSV file cannot be read for merging or written."""
