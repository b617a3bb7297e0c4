"""Persona registry lookups: selection by name and substring filtering."""

from collections.abc import Iterable, Mapping

from echo_chamber.errors import InvalidRequestError
from echo_chamber.models import Persona


def select_personas(registry: Mapping[str, Persona], names: Iterable[str]) -> tuple[Persona, ...]:
    """Resolve persona names against the registry, keeping selection order.

    Raises:
        InvalidRequestError: On an unknown name, a duplicate, or an empty selection.
    """
    selected: list[Persona] = []
    seen: set[str] = set()
    for raw_name in names:
        name = raw_name.strip()
        if not name:
            continue
        if name not in registry:
            known = ", ".join(registry)
            raise InvalidRequestError(f"Unknown persona '{name}'. Known personas: {known}")
        if name in seen:
            raise InvalidRequestError(f"Persona '{name}' selected more than once")
        seen.add(name)
        selected.append(registry[name])
    if not selected:
        raise InvalidRequestError("At least one persona must be selected")
    return tuple(selected)


def filter_personas(registry: Mapping[str, Persona], text: str) -> list[Persona]:
    """Case-insensitive substring match on persona names."""
    needle = text.lower()
    return [p for name, p in registry.items() if needle in name.lower()]
