"""
Custom exceptions for panelmotion.

Provider adapters translate SDK errors into the Upstream* family; the
orchestrator raises the Storyboard* family for invalid requests.
"""


class PanelMotionError(Exception):
    """Base exception for all panelmotion errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(PanelMotionError):
    """Raised when there's an issue with configuration."""
    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""
    pass


# =============================================================================
# UPSTREAM (GENERATION SERVICE) ERRORS
# =============================================================================

class UpstreamError(PanelMotionError):
    """Base exception for failures of an external generation service."""

    def __init__(self, message: str, provider: str = None, details: dict = None):
        details = dict(details or {})
        if provider:
            details["provider"] = provider
        super().__init__(message, details)
        self.provider = provider


class UpstreamUnavailable(UpstreamError):
    """Service unreachable, misconfigured, or out of retries."""
    pass


class UpstreamRefused(UpstreamError):
    """Service answered but produced nothing usable (blocked or empty)."""
    pass


class InvalidResult(UpstreamRefused):
    """Structured output could not be parsed or failed validation."""
    pass


class JobFailed(UpstreamError):
    """A video job reported an error or did not finish in time."""

    def __init__(self, message: str, job_id: str = None, provider: str = None):
        details = {"job_id": job_id} if job_id else None
        super().__init__(message, provider, details)
        self.job_id = job_id


# =============================================================================
# STORYBOARD ERRORS
# =============================================================================

class StoryboardError(PanelMotionError):
    """Base exception for orchestration errors."""
    pass


class SceneNotFound(StoryboardError):
    """Raised when a scene id is not part of the current storyboard."""

    def __init__(self, scene_id: str):
        super().__init__(f"Scene not found: '{scene_id}'", {"scene_id": scene_id})
        self.scene_id = scene_id


class SceneNotReady(StoryboardError):
    """Raised when an operation needs data the scene does not have yet."""

    def __init__(self, scene_id: str, reason: str):
        super().__init__(f"Scene '{scene_id}' is not ready: {reason}", {"scene_id": scene_id})
        self.scene_id = scene_id


class JobAlreadyRunning(StoryboardError):
    """Raised when a video job is started for a scene that already has one."""

    def __init__(self, scene_id: str):
        super().__init__(
            f"A video job is already running for scene '{scene_id}'",
            {"scene_id": scene_id},
        )
        self.scene_id = scene_id


class StoryboardSuperseded(StoryboardError):
    """Raised when work is discarded because a newer storyboard was built."""

    def __init__(self, generation: int):
        super().__init__(
            f"Storyboard generation {generation} was superseded",
            {"generation": generation},
        )
        self.generation = generation
