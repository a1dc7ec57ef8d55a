"""Image node backed by the asset store."""
import logging

from ..engine.context import ExecutionContext
from ..engine.errors import AssetNotFoundError
from ..engine.graph import Node
from ..models.node_data import ImageData
from ..models.scene import SceneObject
from .base import STREAM_OUT, BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry

logger = logging.getLogger(__name__)


@NodeRegistry.register("image")
class ImageNode(BaseNode):
    """Places an uploaded image. Missing assets degrade to a placeholder."""

    CATEGORY = "geometry"
    DISPLAY_NAME = "Image"
    DATA_MODEL = ImageData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {}

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return STREAM_OUT

    async def execute(self, node: Node, context: ExecutionContext) -> None:
        data: ImageData = node.data
        properties = {
            "image_asset_id": data.asset_id,
            "width": data.width,
            "height": data.height,
        }
        if data.asset_id and context.asset_store is not None:
            try:
                info = await context.asset_store.resolve(data.asset_id)
            except AssetNotFoundError as e:
                logger.warning("Image node %s: %s", node.id, e)
                properties["placeholder"] = True
            else:
                properties.update(
                    path=str(info.path),
                    mime_type=info.mime_type,
                    width=data.width or info.width,
                    height=data.height or info.height,
                )
        else:
            properties["placeholder"] = True

        obj = SceneObject(id=node.id, type="image", properties=properties)
        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, [obj])
