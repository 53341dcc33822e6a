"""
Schema-driven validation of request input.

A request schema is a pydantic model with optional ``params``, ``query`` and
``body`` sections. ``validate`` never raises for bad input: it returns
``Success`` with the parsed model or ``Failure`` with issues ordered the way
the fields are declared on the schema.
"""

from __future__ import annotations

import json
import re
import types
from collections.abc import Sequence as AbcSequence
from dataclasses import dataclass
from datetime import date
from typing import Annotated, Any, Callable, Generic, Tuple, Type, TypeVar, Union, get_args, get_origin

from fastapi import Request
from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from school_common.errors import ValidationFailure

M = TypeVar("M", bound=BaseModel)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class RequestSchema(BaseModel):
    """Base for input schemas: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _require_iso_date(value: Any) -> Any:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        raise ValueError("Date must be in YYYY-MM-DD format")
    return value


# Calendar date given as a YYYY-MM-DD string, coerced to ``datetime.date``.
IsoDate = Annotated[date, BeforeValidator(_require_iso_date)]


@dataclass(frozen=True)
class Issue:
    path: Tuple[str, ...]
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": list(self.path), "message": self.message}


@dataclass(frozen=True)
class Success(Generic[M]):
    data: M

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    issues: Tuple[Issue, ...]

    @property
    def ok(self) -> bool:
        return False


ValidationOutcome = Union[Success[M], Failure]


def _unwrap(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Annotated:
        return _unwrap(get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        return _unwrap(members[0]) if len(members) == 1 else None
    return annotation


def _item_type(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin in (list, tuple, set, frozenset) or origin is AbcSequence:
        args = get_args(annotation)
        return _unwrap(args[0]) if args else None
    return None


def _field_position(model: Type[BaseModel], key: str) -> Tuple[int, Any]:
    for index, (name, field) in enumerate(model.model_fields.items()):
        if key == name or key == field.alias:
            return index, _unwrap(field.annotation)
    return len(model.model_fields), None


def _declaration_rank(schema: Type[BaseModel], loc: Tuple[Any, ...]) -> Tuple[int, ...]:
    rank: list[int] = []
    current: Any = schema
    for segment in loc:
        if isinstance(segment, int):
            rank.append(segment)
            current = _item_type(current)
        elif isinstance(current, type) and issubclass(current, BaseModel):
            index, current = _field_position(current, segment)
            rank.append(index)
        else:
            rank.append(0)
            current = None
    return tuple(rank)


def _issue_message(error: dict[str, Any]) -> str:
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return error.get("msg", "Invalid value")


def validate(schema: Type[M], raw_input: Any) -> ValidationOutcome[M]:
    try:
        data = schema.model_validate(raw_input)
    except ValidationError as exc:
        ranked = []
        for position, error in enumerate(exc.errors(include_url=False)):
            loc = tuple(error.get("loc", ()))
            issue = Issue(path=tuple(str(part) for part in loc), message=_issue_message(error))
            ranked.append((_declaration_rank(schema, loc), position, issue))
        ranked.sort(key=lambda item: (item[0], item[1]))
        issues = tuple(issue for _, _, issue in ranked)
        return Failure(issues or (Issue(path=(), message="Invalid input"),))
    return Success(data)


async def read_json_body(request: Request) -> Tuple[Any, bool]:
    """Return ``(body, ok)``; an empty body reads as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        return {}, True
    try:
        return json.loads(raw), True
    except (ValueError, UnicodeDecodeError):
        return None, False


async def build_input_bundle(request: Request) -> Tuple[dict[str, Any], Tuple[Issue, ...]]:
    bundle: dict[str, Any] = {
        "params": dict(request.path_params),
        "query": dict(request.query_params),
    }
    if request.method not in _BODY_METHODS:
        return bundle, ()
    body, ok = await read_json_body(request)
    if not ok:
        return bundle, (Issue(path=("body",), message="Malformed JSON body"),)
    bundle["body"] = body
    return bundle, ()


def validated(schema: Type[M]) -> Callable[[Request], Any]:
    """
    FastAPI dependency factory: validate the request against ``schema`` and
    hand the parsed model to the route, or answer 400 with the issue list.
    """

    async def dependency(request: Request) -> M:
        bundle, body_issues = await build_input_bundle(request)
        if body_issues:
            raise ValidationFailure(body_issues)
        outcome = validate(schema, bundle)
        if isinstance(outcome, Failure):
            raise ValidationFailure(outcome.issues)
        return outcome.data

    return dependency
