"""Name helpers for topics, services and tf frames."""

from __future__ import annotations

from typing import Optional


def namespaced(name: str, *, namespace: Optional[str] = None, absolute: bool = True) -> str:
    """Return ``name`` under an optional mission namespace.

    Leading slashes on ``name`` and surrounding slashes on ``namespace`` are
    ignored. ``absolute`` controls the leading slash of the result.
    """

    clean = (name or "").lstrip("/")
    if not clean:
        return "/" if absolute else ""
    if namespace and namespace.strip("/"):
        clean = f"{namespace.strip('/')}/{clean}"
    return f"/{clean}" if absolute else clean


def frame_id(frame: str) -> str:
    """tf2 frame ids never carry a leading slash."""

    return (frame or "").lstrip("/")


__all__ = ["namespaced", "frame_id"]
