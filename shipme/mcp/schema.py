from __future__ import annotations

import copy
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Type, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    StringConstraints,
    create_model,
)
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


class ToolDefinition(BaseModel):
    """Name, description and input schema of a tool, as advertised to the orchestrator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
        }


_PRIMITIVES: Dict[str, Any] = {
    "string": StrictStr,
    "boolean": StrictBool,
    "integer": StrictInt,
    "number": Union[StrictInt, StrictFloat],
}


def _python_type(spec: Mapping[str, Any], model_name: str) -> Any:
    if "enum" in spec:
        return Literal[tuple(spec["enum"])]  # type: ignore[misc]

    kind = spec.get("type")
    if kind == "string" and ("pattern" in spec or "minLength" in spec):
        return Annotated[
            str,
            StringConstraints(strict=True, pattern=spec.get("pattern"), min_length=spec.get("minLength")),
        ]
    if kind == "integer" and "minimum" in spec:
        return Annotated[int, Field(strict=True, ge=spec["minimum"])]
    if kind == "number" and "minimum" in spec:
        return Annotated[float, Field(strict=True, ge=spec["minimum"])]
    if kind in _PRIMITIVES:
        return _PRIMITIVES[kind]
    if kind == "array":
        items = spec.get("items")
        if isinstance(items, Mapping) and items:
            return List[_python_type(items, f"{model_name}Item")]  # type: ignore[misc]
        return List[Any]
    if kind == "object":
        if spec.get("properties"):
            return compile_input_model(model_name, spec)
        return Dict[str, Any]
    return Any


def compile_input_model(model_name: str, schema: Mapping[str, Any]) -> Type[BaseModel]:
    """Turn a JSON-Schema-shaped object description into a pydantic model.

    Properties are declared under generated attribute names with the
    property name as alias, so any property name is accepted. Unknown
    arguments are allowed through untouched.
    """
    properties: Mapping[str, Any] = schema.get("properties") or {}
    required = set(schema.get("required") or [])

    fields: Dict[str, Tuple[Any, Any]] = {}
    for index, (prop, spec) in enumerate(properties.items()):
        annotation = _python_type(spec or {}, f"{model_name}_{prop}")
        if prop in required:
            fields[f"field_{index}"] = (annotation, Field(..., alias=prop))
        else:
            fields[f"field_{index}"] = (Optional[annotation], Field(None, alias=prop))

    return create_model(  # type: ignore[call-overload]
        model_name,
        __config__=ConfigDict(extra="allow", populate_by_name=False),
        **fields,
    )


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def validate_arguments(
    tool_name: str,
    model: Type[BaseModel],
    schema: Mapping[str, Any],
    arguments: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Validate call arguments and fill in schema defaults.

    Raises:
        ValidationError: naming every offending field
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ValidationError(f"Invalid arguments for tool '{tool_name}': expected an object")

    try:
        parsed = model.model_validate(dict(arguments))
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid arguments for tool '{tool_name}': {_describe(exc)}",
            details={"errors": exc.errors(include_url=False, include_input=False)},
        ) from None

    data = parsed.model_dump(by_alias=True, exclude_unset=True)
    for extra_key, extra_value in (parsed.model_extra or {}).items():
        data.setdefault(extra_key, extra_value)
    for prop, spec in (schema.get("properties") or {}).items():
        if prop not in data and isinstance(spec, Mapping) and "default" in spec:
            data[prop] = copy.deepcopy(spec["default"])
    return data
