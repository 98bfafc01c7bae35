"""
Error taxonomy for the narrated video pipeline.

Every failure that aborts a job derives from :class:`PipelineError` so the
HTTP layer can turn it into a structured ``{"error", "code"}`` body. Stock
footage *resolution* failures are recovered inside the asset fetcher and never
appear here.
"""


class PipelineError(Exception):
    """Base class for job-aborting failures."""

    code = "PipelineError"
    status_code = 500


class EmptyScriptError(PipelineError, ValueError):
    """The script contains no usable subtitle lines."""

    code = "EmptyScript"
    status_code = 422


class SubtitleOverflowError(PipelineError, ValueError):
    """Cue spans cannot fit inside the requested duration under the active policy."""

    code = "SubtitleOverflow"
    status_code = 422


class AssetDownloadError(PipelineError):
    """Background footage resolved but the byte transfer failed."""

    code = "AssetDownloadFailed"
    status_code = 502


class UpstreamModelError(PipelineError):
    """The language model call failed or returned nothing usable."""

    code = "UpstreamModelError"
    status_code = 502


class ComposerStateError(PipelineError):
    """A composer stage was invoked out of order or without its inputs."""

    code = "ComposerStateError"


class StageError(PipelineError):
    """An external transcoding engine invocation failed."""

    code = "StageFailed"

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class TrimError(StageError):
    code = "TrimFailed"


class MuxError(StageError):
    code = "MuxFailed"


class SubtitleFilterError(StageError):
    code = "SubtitleFilterFailed"
