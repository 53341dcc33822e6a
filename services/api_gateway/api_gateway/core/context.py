"""Per-request edge state, visible to anything running inside the request."""

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from school_common.context import OperatingContext


@dataclass(frozen=True)
class EdgeState:
    trace_id: str
    context: OperatingContext = field(default_factory=OperatingContext.platform)

    @property
    def scope_label(self) -> str:
        return self.context.subdomain or "platform"


_edge_state: contextvars.ContextVar[EdgeState] = contextvars.ContextVar("edge_state")


def new_trace_id() -> str:
    return uuid.uuid4().hex


@contextmanager
def edge_scope(context: OperatingContext, trace_id: Optional[str] = None) -> Iterator[EdgeState]:
    state = EdgeState(trace_id=trace_id or new_trace_id(), context=context)
    token = _edge_state.set(state)
    try:
        yield state
    finally:
        _edge_state.reset(token)


def current_edge_state() -> EdgeState:
    try:
        return _edge_state.get()
    except LookupError as exc:
        raise RuntimeError("Edge state is only available inside a request") from exc
