"""Ordered query parameter helpers with URLSearchParams-style set/delete."""

from collections.abc import Iterable
from urllib.parse import urlencode

QueryParams = list[tuple[str, str]]


def set_param(params: QueryParams, name: str, value: str) -> QueryParams:
    """Replace the first `name` in place, drop the rest, or append if absent."""
    result: QueryParams = []
    replaced = False
    for key, current in params:
        if key != name:
            result.append((key, current))
        elif not replaced:
            result.append((name, value))
            replaced = True
    if not replaced:
        result.append((name, value))
    return result


def delete_params(params: QueryParams, names: Iterable[str]) -> QueryParams:
    drop = set(names)
    return [(key, value) for key, value in params if key not in drop]


def encode_params(params: QueryParams) -> str:
    return urlencode(params)
