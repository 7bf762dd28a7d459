"""Configuration management."""

import os
from pathlib import Path
from typing import List
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from .exceptions import ConfigurationError, MissingConfigError

# Load environment variables
load_dotenv()

ALL_VIDEO_MODELS = ["seedance", "hailuo", "veo", "kling"]


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "")
    if not raw.strip():
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config(BaseModel):
    """Application configuration."""

    # API Keys
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""),
        description="Anthropic API key"
    )
    google_application_credentials: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""),
        description="Path to Google Cloud service account JSON"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID"
    )
    google_cloud_location: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        description="Vertex AI region"
    )
    veo_output_bucket: str = Field(
        default_factory=lambda: os.getenv("VEO_OUTPUT_BUCKET", ""),
        description="GCS bucket for Veo output"
    )

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("PANELMOTION_WORKSPACE", ".")),
        description="Workspace directory"
    )

    # Model settings
    default_model: str = Field(
        default_factory=lambda: os.getenv("PANELMOTION_CLAUDE_MODEL", "claude-sonnet-4-20250514"),
        description="Claude model used for decomposition and recommendation"
    )
    imagen_model: str = Field(
        default_factory=lambda: os.getenv("PANELMOTION_IMAGEN_MODEL", "imagen-3.0-capability-001"),
        description="Imagen model used for keyframes"
    )
    veo_model: str = Field(
        default_factory=lambda: os.getenv("PANELMOTION_VEO_MODEL", "veo-2.0-generate-001"),
        description="Veo model used for video jobs"
    )

    # Pipeline settings
    frame_aspect_ratio: str = Field(
        default="16:9",
        description="Aspect ratio of generated keyframes"
    )
    video_models: List[str] = Field(
        default_factory=lambda: _env_list("PANELMOTION_VIDEO_MODELS", ALL_VIDEO_MODELS),
        description="Enabled video backends, in priority order"
    )
    video_backend: str = Field(
        default="veo",
        description="Backend whose prompt is sent to the video job"
    )
    video_poll_interval: float = Field(
        default_factory=lambda: float(os.getenv("PANELMOTION_POLL_INTERVAL", "10")),
        description="Seconds between video job polls",
        ge=0,
    )
    video_max_poll_time: float = Field(
        default=600.0,
        description="Maximum seconds to wait for a video job",
        gt=0,
    )

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def default_video_model(self) -> str:
        """First enabled backend; used when recommendation fails."""
        return self.video_models[0] if self.video_models else ALL_VIDEO_MODELS[0]

    def validate_required(self) -> None:
        """Validate that required credentials are set."""
        if not self.anthropic_api_key:
            raise MissingConfigError("ANTHROPIC_API_KEY not set", {"variable": "ANTHROPIC_API_KEY"})

        unknown = [m for m in self.video_models if m not in ALL_VIDEO_MODELS]
        if unknown:
            raise ConfigurationError(
                f"Unknown video models: {', '.join(unknown)}",
                {"allowed": ALL_VIDEO_MODELS},
            )

    def validate_google_required(self) -> None:
        """Validate that the Google Cloud project is set (Imagen and Veo)."""
        if not self.google_cloud_project:
            raise MissingConfigError(
                "GOOGLE_CLOUD_PROJECT not set", {"variable": "GOOGLE_CLOUD_PROJECT"}
            )

    def validate_veo_required(self) -> None:
        """Validate that Veo / Google Cloud credentials are set.

        Raises:
            MissingConfigError: If any required Veo configuration is missing.
            ConfigurationError: If the output bucket is not a GCS URI.
        """
        missing: list[str] = []

        if not self.google_cloud_project:
            missing.append("GOOGLE_CLOUD_PROJECT")
        if not self.veo_output_bucket:
            missing.append("VEO_OUTPUT_BUCKET")

        if missing:
            raise MissingConfigError(
                f"Missing required Veo configuration: {', '.join(missing)}. "
                "Set the corresponding environment variables.",
                {"missing": missing},
            )

        # Validate bucket format
        if not self.veo_output_bucket.startswith("gs://"):
            raise ConfigurationError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self.veo_output_bucket}"
            )


# Global config instance
config = Config()
