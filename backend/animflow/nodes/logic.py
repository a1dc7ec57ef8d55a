"""Logic nodes: constants, comparisons, arithmetic, branching, results and print."""
import logging
import math
import operator
from typing import Any

from ..engine.context import ExecutionContext
from ..engine.errors import LogicError, MultipleResultValuesError
from ..engine.graph import Node
from ..engine.metadata import EMPTY_METADATA, OutputMetadata
from ..models.node_data import (
    BooleanOpData, CompareData, ConstantsData, IfElseData, MathOpData, PrintData,
    ResultData,
)
from .base import BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry

logger = logging.getLogger(__name__)

BOOLEAN_META = OutputMetadata(logic_type="boolean")
NUMBER_META = OutputMetadata(logic_type="number")


class LogicNode(BaseNode):
    CATEGORY = "logic"

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return [OutputSpec(PortType.DATA, "output")]

    @staticmethod
    def single_input(node: Node, context: ExecutionContext, port: str) -> Any:
        inputs = context.get_connected_inputs(node.id, port)
        if not inputs:
            raise LogicError(
                f"{node.name} is missing a value on input '{port}'",
                node.id, node.name, code="ERR_MISSING_INPUT", port=port,
            )
        return inputs[0].data


@NodeRegistry.register("constants")
class ConstantsNode(LogicNode):
    DISPLAY_NAME = "Constants"
    DATA_MODEL = ConstantsData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {}

    def execute(self, node: Node, context: ExecutionContext) -> None:
        data: ConstantsData = node.data
        context.set_node_output(
            node.id, "output", PortType.DATA, data.value,
            OutputMetadata(logic_type=data.value_type),
        )


COMPARE_OPS = {
    "gt": operator.gt,
    "lt": operator.lt,
    "eq": operator.eq,
    "neq": operator.ne,
    "gte": operator.ge,
    "lte": operator.le,
}


@NodeRegistry.register("compare")
class CompareNode(LogicNode):
    DISPLAY_NAME = "Compare"
    DATA_MODEL = CompareData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {
            "input_a": InputSpec(PortType.DATA, "A"),
            "input_b": InputSpec(PortType.DATA, "B"),
        }

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return [OutputSpec(PortType.BOOLEAN, "output")]

    def execute(self, node: Node, context: ExecutionContext) -> None:
        a = self.single_input(node, context, "input_a")
        b = self.single_input(node, context, "input_b")
        try:
            result = bool(COMPARE_OPS[node.data.operator](a, b))
        except TypeError as e:
            raise LogicError(
                f"{node.name} cannot compare {a!r} and {b!r}", node.id, node.name,
            ) from e
        context.set_node_output(node.id, "output", PortType.BOOLEAN, result, BOOLEAN_META)


@NodeRegistry.register("boolean_op")
class BooleanOpNode(LogicNode):
    DISPLAY_NAME = "Boolean Op"
    DATA_MODEL = BooleanOpData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        if isinstance(data, BooleanOpData) and data.operator == "not":
            return {"input1": InputSpec(PortType.DATA, "Input")}
        return {
            "input1": InputSpec(PortType.DATA, "A"),
            "input2": InputSpec(PortType.DATA, "B"),
        }

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return [OutputSpec(PortType.BOOLEAN, "output")]

    def execute(self, node: Node, context: ExecutionContext) -> None:
        op = node.data.operator
        a = bool(self.single_input(node, context, "input1"))
        if op == "not":
            result = not a
        else:
            b = bool(self.single_input(node, context, "input2"))
            result = {"and": a and b, "or": a or b, "xor": a != b}[op]
        context.set_node_output(node.id, "output", PortType.BOOLEAN, result, BOOLEAN_META)


UNARY_MATH = {"sqrt", "abs"}


@NodeRegistry.register("math_op")
class MathOpNode(LogicNode):
    DISPLAY_NAME = "Math Op"
    DATA_MODEL = MathOpData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        if isinstance(data, MathOpData) and data.operator in UNARY_MATH:
            return {"input_a": InputSpec(PortType.DATA, "A")}
        return {
            "input_a": InputSpec(PortType.DATA, "A"),
            "input_b": InputSpec(PortType.DATA, "B"),
        }

    def _fail(self, node: Node, message: str, code: str) -> LogicError:
        return LogicError(f"{node.name}: {message}", node.id, node.name, code=code)

    def compute(self, node: Node, op: str, a: float, b: float | None) -> float:
        if op == "sqrt":
            if a < 0:
                raise self._fail(node, "square root of a negative number", "ERR_MATH_SQRT_NEGATIVE")
            return math.sqrt(a)
        if op == "abs":
            return abs(a)
        if op in ("divide", "modulo") and b == 0:
            raise self._fail(node, f"{op} by zero", "ERR_MATH_DIVISION_BY_ZERO")
        try:
            return {
                "add": lambda: a + b,
                "subtract": lambda: a - b,
                "multiply": lambda: a * b,
                "divide": lambda: a / b,
                "modulo": lambda: math.fmod(a, b),
                "power": lambda: math.pow(a, b),
                "min": lambda: min(a, b),
                "max": lambda: max(a, b),
            }[op]()
        except (OverflowError, ValueError) as e:
            raise self._fail(node, f"{op} failed: {e}", "ERR_MATH_INVALID_RESULT") from e

    def execute(self, node: Node, context: ExecutionContext) -> None:
        op = node.data.operator
        try:
            a = float(self.single_input(node, context, "input_a"))
            b = None if op in UNARY_MATH else float(self.single_input(node, context, "input_b"))
        except (TypeError, ValueError) as e:
            raise self._fail(node, "inputs must be numbers", "ERR_MATH_INVALID_INPUT") from e
        result = self.compute(node, op, a, b)
        if math.isnan(result) or math.isinf(result):
            raise self._fail(node, "result is not a finite number", "ERR_MATH_INVALID_RESULT")
        context.set_node_output(node.id, "output", PortType.DATA, result, NUMBER_META)


@NodeRegistry.register("if_else")
class IfElseNode(LogicNode):
    """Routes its data input to ``true_path`` or ``false_path``.

    Only the taken branch gets an output; nodes fed solely by the other
    branch are skipped by the engine.
    """

    DISPLAY_NAME = "If/Else"
    DATA_MODEL = IfElseData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {
            "condition": InputSpec(PortType.DATA, "Condition"),
            "data": InputSpec(PortType.DATA, "Data"),
        }

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return [
            OutputSpec(PortType.DATA, "true_path"),
            OutputSpec(PortType.DATA, "false_path"),
        ]

    def execute(self, node: Node, context: ExecutionContext) -> None:
        condition = bool(self.single_input(node, context, "condition"))
        inputs = context.get_connected_inputs(node.id, "data")
        value = inputs[0].data if inputs else None
        metadata = inputs[0].metadata if inputs else EMPTY_METADATA
        port = "true_path" if condition else "false_path"
        context.set_node_output(node.id, port, PortType.DATA, value, metadata)


@NodeRegistry.register("result")
class ResultNode(LogicNode):
    """Publishes a value that other nodes can bind fields to."""

    DISPLAY_NAME = "Result"
    DATA_MODEL = ResultData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {"input": InputSpec(PortType.DATA, "Value")}

    def execute(self, node: Node, context: ExecutionContext) -> None:
        inputs = context.get_connected_inputs(node.id, "input")
        if len(inputs) > 1:
            raise MultipleResultValuesError(node.name, node.id, len(inputs))
        value = inputs[0].data if inputs else None
        metadata = inputs[0].metadata if inputs else EMPTY_METADATA
        context.variables[node.data.label or node.id] = value
        logger.info("Result %s = %r", node.data.label or node.id, value)
        context.set_node_output(node.id, "output", PortType.DATA, value, metadata)


@NodeRegistry.register("print")
class PrintNode(LogicNode):
    """Logs the value it receives.

    When the node is the debug target, the value also lands in the
    execution log so the editor can preview it.
    """

    DISPLAY_NAME = "Print"
    DATA_MODEL = PrintData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {"input": InputSpec(PortType.DATA, "Value")}

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return []

    def execute(self, node: Node, context: ExecutionContext) -> None:
        label = node.data.label or node.name
        inputs = context.get_connected_inputs(node.id, "input")
        value = inputs[0].data if inputs else None
        value_type = inputs[0].metadata.logic_type if inputs else None
        value_type = value_type or type(value).__name__
        formatted = value if isinstance(value, str) else repr(value)
        logger.info("Print %s: %s", label, formatted)
        if context.debug_target_node_id == node.id:
            context.log(
                node.id, "print_output",
                label=label, value=value, value_type=value_type, formatted_value=formatted,
            )
