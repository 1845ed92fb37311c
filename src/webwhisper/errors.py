class WebWhisperError(Exception):
    """Base class for all retrieval subsystem errors."""


class ValidationError(WebWhisperError):
    """Caller supplied a missing or empty query, url, or malformed input."""


class DimensionMismatch(ValidationError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding has {actual} dimensions, expected {expected}")
        self.expected = expected
        self.actual = actual


class EmbeddingUnavailable(WebWhisperError):
    """Embedding provider unreachable, failing, or over quota."""


class IndexUnavailable(WebWhisperError):
    """Vector index backend unreachable or rejecting requests."""


class PartialIngestionFailure(WebWhisperError):
    """One ingestion stage succeeded and a later one failed.

    Recovery is to rerun ingestion for ``url`` from the crawler output.
    """

    def __init__(self, url: str, stage: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Ingestion of {url} failed at {stage}{detail}")
        self.url = url
        self.stage = stage


class OperationTimeout(WebWhisperError, TimeoutError):
    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} did not finish within {timeout:.1f}s")
        self.operation = operation
        self.timeout = timeout
