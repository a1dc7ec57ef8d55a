"""Value types that flow between nodes and end up in scene descriptions."""
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


TrackType = Literal["move", "rotate", "scale", "fade", "color", "slide"]


def _origin() -> dict[str, float]:
    return {"x": 0.0, "y": 0.0}


def _unit() -> dict[str, float]:
    return {"x": 1.0, "y": 1.0}


class SceneObject(BaseModel):
    id: str
    type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    initial_position: dict[str, float] = Field(default_factory=_origin)
    initial_rotation: float = 0.0
    initial_scale: dict[str, float] = Field(default_factory=_unit)
    initial_opacity: float = 1.0
    appearance_time: float | None = None
    batch: bool = False
    batch_keys: list[str] = Field(default_factory=list)

    @property
    def is_batched(self) -> bool:
        return self.batch and any(k.strip() for k in self.batch_keys)


class AnimationTrack(BaseModel):
    """A track as authored on an Animation node, relative to its baseline."""
    id: str
    type: TrackType
    start_time: float = 0.0
    duration: float = 1.0
    easing: str = "linear"
    properties: dict[str, Any] = Field(default_factory=dict)


class SceneAnimationTrack(BaseModel):
    """A track attached to one object at an absolute timeline position."""
    model_config = ConfigDict(frozen=True)

    id: str
    object_id: str
    track_id: str
    type: TrackType
    start_time: float
    duration: float
    easing: str = "linear"
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class TrackOverride(BaseModel):
    """Per-object change to one authored track, matched by id, else by type."""
    model_config = ConfigDict(frozen=True)

    track_id: str | None = None
    type: TrackType | None = None
    start_time: float | None = None
    duration: float | None = None
    easing: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class ObjectAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    initial: dict[str, Any] = Field(default_factory=dict)
    tracks: tuple[TrackOverride, ...] = ()


class VariableBinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    bound_result_node_id: str | None = None


class SceneDescription(BaseModel):
    """One renderable scene (or still frame) for the export pipeline."""
    id: str
    scene_node_id: str
    name: str
    output: Literal["video", "image"] = "video"
    batch_key: str | None = None
    width: int
    height: int
    fps: int | None = None
    duration: float
    background_color: str
    format: str | None = None
    objects: list[SceneObject] = Field(default_factory=list)
    animations: list[SceneAnimationTrack] = Field(default_factory=list)
