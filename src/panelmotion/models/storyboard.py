"""Storyboard data model and on-disk format."""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from .scene import Character, Image, Scene

STORYBOARD_FILE = "storyboard.yaml"
FRAMES_DIR = "frames"


class Storyboard(BaseModel):
    """An ordered set of scenes plus the inputs they were built from."""

    project_name: str = Field(..., description="Project name")
    pages: List[str] = Field(default_factory=list, description="Source page image paths")
    characters: List[Character] = Field(default_factory=list, description="Character roster")
    scenes: List[Scene] = Field(default_factory=list, description="Scenes in display order")
    aspect_ratio: str = Field(default="16:9", description="Keyframe aspect ratio")

    class Config:
        """Pydantic config."""
        frozen = False

    def get_scene(self, scene_id: str) -> Optional[Scene]:
        return next((s for s in self.scenes if s.id == scene_id), None)

    def load_pages(self) -> List[Image]:
        return [Image.from_path(Path(p)) for p in self.pages]

    def save(self, directory: Path) -> Path:
        """Write storyboard.yaml and the keyframes under ``directory``."""
        directory = Path(directory)
        frames_dir = directory / FRAMES_DIR
        scenes_data = []

        for scene in self.scenes:
            data = scene.model_dump(mode="json", exclude={"start_frame", "end_frame"})
            for field_name in ("start_frame", "end_frame"):
                image: Optional[Image] = getattr(scene, field_name)
                if image is None:
                    data[field_name] = None
                    continue
                path = image.save(frames_dir / f"{scene.id}_{field_name}{image.extension}")
                data[field_name] = {
                    "path": str(path.relative_to(directory)),
                    "mime_type": image.mime_type,
                }
            scenes_data.append(data)

        document = self.model_dump(mode="json", exclude={"scenes"})
        document["scenes"] = scenes_data

        directory.mkdir(parents=True, exist_ok=True)
        path = directory / STORYBOARD_FILE
        with open(path, "w") as f:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
        return path

    @classmethod
    def load(cls, directory: Path) -> "Storyboard":
        """Load a storyboard written by :meth:`save`."""
        directory = Path(directory)
        with open(directory / STORYBOARD_FILE, "r") as f:
            data = yaml.safe_load(f) or {}

        scenes = []
        for scene_data in data.pop("scenes", None) or []:
            for field_name in ("start_frame", "end_frame"):
                ref = scene_data.get(field_name)
                if ref:
                    scene_data[field_name] = Image(
                        data=(directory / ref["path"]).read_bytes(),
                        mime_type=ref.get("mime_type", "image/png"),
                    )
            scenes.append(Scene(**scene_data))

        return cls(scenes=scenes, **data)
