"""Per-kind node configuration, as a closed union discriminated on ``kind``."""
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..engine.errors import UnknownNodeKindError
from .scene import AnimationTrack, ObjectAssignment, VariableBinding


Bindings = dict[str, VariableBinding]


class NodeDataBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    display_name: str | None = None


class BindableData(NodeDataBase):
    variable_bindings: Bindings = Field(default_factory=dict)
    variable_bindings_by_object: dict[str, Bindings] = Field(default_factory=dict)


# --- geometry --------------------------------------------------------------

class TriangleData(NodeDataBase):
    kind: Literal["triangle"] = "triangle"
    size: float = Field(80, gt=0)
    color: str = "#ff4444"
    stroke_color: str = "#ffffff"
    stroke_width: float = Field(3, ge=0)


class CircleData(NodeDataBase):
    kind: Literal["circle"] = "circle"
    radius: float = Field(50, gt=0)
    color: str = "#4444ff"
    stroke_color: str = "#ffffff"
    stroke_width: float = Field(2, ge=0)


class RectangleData(NodeDataBase):
    kind: Literal["rectangle"] = "rectangle"
    width: float = Field(100, gt=0)
    height: float = Field(60, gt=0)
    color: str = "#44ff44"
    stroke_color: str = "#ffffff"
    stroke_width: float = Field(2, ge=0)


class TextData(NodeDataBase):
    kind: Literal["text"] = "text"
    content: str = "Text"
    font_size: float = Field(24, gt=0)
    font_family: str = "Arial"
    color: str = "#ffffff"


class ImageData(NodeDataBase):
    kind: Literal["image"] = "image"
    asset_id: str | None = None
    width: float | None = None
    height: float | None = None


# --- timing and streams ----------------------------------------------------

class InsertData(BindableData):
    kind: Literal["insert"] = "insert"
    appearance_time: float = Field(0, ge=0)


class MergeData(NodeDataBase):
    kind: Literal["merge"] = "merge"
    input_port_count: int = Field(2, ge=1, le=16)


class FilterData(NodeDataBase):
    kind: Literal["filter"] = "filter"
    selected_object_ids: list[str] = Field(default_factory=list)


class BatchData(NodeDataBase):
    kind: Literal["batch"] = "batch"
    keys: list[str] = Field(default_factory=list)
    keys_by_object: dict[str, list[str]] = Field(default_factory=dict)


class DuplicateData(NodeDataBase):
    kind: Literal["duplicate"] = "duplicate"
    count: int = 1


# --- styling and animation -------------------------------------------------

class CanvasData(BindableData):
    kind: Literal["canvas"] = "canvas"
    position: dict[str, float] | None = None
    rotation: float | None = None
    scale: dict[str, float] | None = None
    opacity: float | None = Field(None, ge=0, le=1)
    fill_color: str | None = None
    stroke_color: str | None = None
    stroke_width: float | None = Field(None, ge=0)
    per_object_assignments: dict[str, ObjectAssignment] = Field(default_factory=dict)
    # field path -> object id (or "__default_object__") -> batch key -> value
    batch_overrides_by_field: dict[str, dict[str, dict[str, Any]]] = Field(
        default_factory=dict
    )


class AnimationData(BindableData):
    kind: Literal["animation"] = "animation"
    tracks: list[AnimationTrack] = Field(default_factory=list)
    per_object_assignments: dict[str, ObjectAssignment] = Field(default_factory=dict)


# --- logic -----------------------------------------------------------------

class ConstantsData(NodeDataBase):
    kind: Literal["constants"] = "constants"
    value_type: Literal["number", "string", "boolean", "color"] = "number"
    number_value: float = 0
    string_value: str = ""
    boolean_value: bool = False
    color_value: str = "#ffffff"

    @property
    def value(self) -> Any:
        return getattr(self, f"{self.value_type}_value")


class CompareData(NodeDataBase):
    kind: Literal["compare"] = "compare"
    operator: Literal["gt", "lt", "eq", "neq", "gte", "lte"] = "gt"


class BooleanOpData(NodeDataBase):
    kind: Literal["boolean_op"] = "boolean_op"
    operator: Literal["and", "or", "not", "xor"] = "and"


class MathOpData(NodeDataBase):
    kind: Literal["math_op"] = "math_op"
    operator: Literal[
        "add", "subtract", "multiply", "divide", "modulo",
        "power", "sqrt", "abs", "min", "max",
    ] = "add"


class IfElseData(NodeDataBase):
    kind: Literal["if_else"] = "if_else"


class ResultData(NodeDataBase):
    kind: Literal["result"] = "result"
    label: str | None = None


class PrintData(NodeDataBase):
    kind: Literal["print"] = "print"
    label: str | None = None


# --- terminals -------------------------------------------------------------

class SceneData(NodeDataBase):
    kind: Literal["scene"] = "scene"
    width: int = Field(1920, gt=0)
    height: int = Field(1080, gt=0)
    fps: int = Field(60, gt=0)
    duration: float | None = Field(None, gt=0)
    background_color: str = "#000000"


class FrameData(NodeDataBase):
    kind: Literal["frame"] = "frame"
    width: int = Field(1920, gt=0)
    height: int = Field(1080, gt=0)
    format: Literal["png", "jpeg"] = "png"
    background_color: str = "#000000"


NodeData = Annotated[
    Union[
        TriangleData, CircleData, RectangleData, TextData, ImageData,
        InsertData, MergeData, FilterData, BatchData, DuplicateData,
        CanvasData, AnimationData,
        ConstantsData, CompareData, BooleanOpData, MathOpData, IfElseData,
        ResultData, PrintData,
        SceneData, FrameData,
    ],
    Field(discriminator="kind"),
]

NODE_DATA_MODELS: dict[str, type[NodeDataBase]] = {
    model.model_fields["kind"].default: model
    for model in get_args(get_args(NodeData)[0])
}

_adapter: TypeAdapter = TypeAdapter(NodeData)


def parse_node_data(
    kind: str, payload: dict[str, Any] | None = None, node_id: str | None = None,
) -> NodeDataBase:
    """Validate a raw editor payload into the data model for ``kind``."""
    if kind not in NODE_DATA_MODELS:
        raise UnknownNodeKindError(kind, node_id)
    return _adapter.validate_python({**(payload or {}), "kind": kind})
