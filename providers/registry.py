from __future__ import annotations

from typing import Any, Callable, Dict


_REGISTRY: Dict[str, Callable[..., Any]] = {}


def register(name: str, factory: Callable[..., Any]) -> None:
    _REGISTRY[name] = factory


def get_provider(name: str, **kwargs: Any) -> Any:
    if name not in _REGISTRY:
        raise KeyError(f"Unknown provider: {name}")
    return _REGISTRY[name](**kwargs)


def available_providers() -> Dict[str, Callable[..., Any]]:
    return dict(_REGISTRY)
