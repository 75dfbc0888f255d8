"""
Schema checks for single edit instructions and whole batches.

Validation is pure: it never touches the network or the filesystem. Each
problem is reported as ``"<field path>: <message>"`` and an empty result
means the batch may be submitted.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Union

from pydantic import BaseModel, ValidationError

from .errors import BatchValidationError
from .models import INSTRUCTION_MODELS, ProcessDocumentRequest, ToolKind

InstructionLike = Union[BaseModel, Mapping[str, Any]]

EMPTY_BATCH_MESSAGE = "at least one edit instruction is required"


def _as_mapping(instruction: InstructionLike) -> Mapping[str, Any]:
    if isinstance(instruction, BaseModel):
        return instruction.model_dump(by_alias=True, exclude_none=True)
    return instruction


def _join_path(prefix: str, loc: Sequence[Union[str, int]]) -> str:
    path = prefix
    for part in loc:
        if isinstance(part, int):
            path = f"{path}[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path or "instruction"


def validate_instruction(instruction: InstructionLike, path: str = "") -> List[str]:
    """
    Check one instruction against the schema of its variant.

    Args:
        instruction: A built instruction model or a raw mapping
        path: Prefix for reported field paths, e.g. ``"instructions[2]"``

    Returns:
        Field-path tagged error messages, empty if the instruction is valid
    """
    data = _as_mapping(instruction)
    if not isinstance(data, Mapping):
        return [f"{path or 'instruction'}: must be an object"]

    raw_type = data.get("type")
    try:
        kind = ToolKind(raw_type)
    except ValueError:
        kinds = ", ".join(kind.value for kind in ToolKind)
        return [f"{_join_path(path, ['type'])}: must be one of {kinds}"]

    try:
        INSTRUCTION_MODELS[kind].model_validate(dict(data))
    except ValidationError as exc:
        return [f"{_join_path(path, error['loc'])}: {error['msg']}" for error in exc.errors()]
    return []


def validate_batch(instructions: Sequence[InstructionLike]) -> List[str]:
    if len(instructions) == 0:
        return [f"instructions: {EMPTY_BATCH_MESSAGE}"]

    errors: List[str] = []
    for index, instruction in enumerate(instructions):
        errors.extend(validate_instruction(instruction, path=f"instructions[{index}]"))
    return errors


def ensure_valid_batch(instructions: Sequence[InstructionLike]) -> ProcessDocumentRequest:
    """
    Validate a batch and wrap it in a request ready for submission.

    Raises:
        BatchValidationError: If any instruction, or the batch itself, is invalid
    """
    errors = validate_batch(instructions)
    if errors:
        raise BatchValidationError(errors)
    return ProcessDocumentRequest.model_validate(
        {"instructions": [dict(_as_mapping(instruction)) for instruction in instructions]}
    )
