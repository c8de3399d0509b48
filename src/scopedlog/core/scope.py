"""Per-execution-context scope stack.

Each thread and each asyncio task sees its own stack, held in a
``ContextVar`` as an immutable tuple of frames. A task created inside a
scope starts with a copy of its creator's frames; pushing and popping in
the task never changes what the creator sees.

Frames are released strictly last-in first-out through the handle returned
by ``push``. The handle is a context manager, so ``with`` guarantees the pop
on every exit path, including exceptions.
"""

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from scopedlog.core.templates import render


class ScopeDisciplineError(RuntimeError):
    """A scope handle was released out of order or more than once."""


@dataclass(frozen=True, eq=False)
class ScopeFrame:
    """One pushed scope.

    Attributes:
        values: Key-value pairs merged into every record while active.
        description: Human-readable form, e.g. "UserId:123".
        template: Template text for the simple form, otherwise None.
    """

    values: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    description: str = ""
    template: str | None = None

    @classmethod
    def build(cls, context: "Mapping[str, Any] | str", *args: Any) -> "ScopeFrame":
        """Build a frame from a mapping or from a template plus arguments."""
        if isinstance(context, str):
            rendered = render(context, args)
            values = {f.name: f.value for f in rendered.fields}
            return cls(MappingProxyType(values), rendered.text, context)
        if not isinstance(context, Mapping):
            raise TypeError(
                f"Scope context must be a mapping or template, got {type(context).__name__}"
            )
        values = dict(context)
        description = ", ".join(f"{k}:{v}" for k, v in values.items())
        return cls(MappingProxyType(values), description)


_frames: ContextVar[tuple[ScopeFrame, ...]] = ContextVar("scopedlog_scope", default=())


class ScopeHandle:
    """Releases exactly one frame; usable as a context manager."""

    def __init__(self, frame: ScopeFrame) -> None:
        self.frame = frame
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Pop this handle's frame.

        Raises:
            ScopeDisciplineError: If already released, or if the frame is not
                the innermost active one in the current context.
        """
        if self._released:
            raise ScopeDisciplineError(
                f"Scope {self.frame.description!r} was already released"
            )
        frames = _frames.get()
        if not frames or frames[-1] is not self.frame:
            raise ScopeDisciplineError(
                f"Scope {self.frame.description!r} released out of order; "
                "scopes must be released innermost first"
            )
        _frames.set(frames[:-1])
        self._released = True

    def __enter__(self) -> "ScopeHandle":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return f"<ScopeHandle {self.frame.description!r} {state}>"


def push(context: "Mapping[str, Any] | str", *args: Any) -> ScopeHandle:
    """Push a scope frame onto the current context's stack.

    Args:
        context: A mapping of values, or a template such as "UserId:{UserId}".
        *args: Template arguments when ``context`` is a template.

    Returns:
        Handle whose ``release()`` pops the frame.
    """
    frame = ScopeFrame.build(context, *args)
    _frames.set(_frames.get() + (frame,))
    return ScopeHandle(frame)


def current_context() -> Mapping[str, Any]:
    """Merge all active frames outer to inner; inner keys win."""
    merged: dict[str, Any] = {}
    for frame in _frames.get():
        merged.update(frame.values)
    return MappingProxyType(merged)


def current_scopes() -> tuple[str, ...]:
    """Descriptions of the active frames, outermost first."""
    return tuple(frame.description for frame in _frames.get())


def depth() -> int:
    return len(_frames.get())
