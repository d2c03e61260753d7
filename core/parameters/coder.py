"""PresetCoder - compact share strings for presets.

Layers:
1. Strip ids and timestamps
2. Shorten keys (name -> n, parameters -> p, type -> t, key -> k, value -> v,
   description -> d, primitiveType -> pt)
3. Encode enum values (queryParam -> q, cookie -> c, localStorage -> l)
4. LZ compression to the URI-safe alphabet (same output as lz-string's
   compressToEncodedURIComponent, so share links interoperate)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from lzstring import LZString

from .types import Parameter, ParameterType, Preset, PrimitiveType

TYPE_CODES = {
    ParameterType.COOKIE: "c",
    ParameterType.LOCAL_ENTRY: "l",
    ParameterType.QUERY_PARAMETER: "q",
}
TYPE_CODES_REVERSE = {v: k for k, v in TYPE_CODES.items()}

PRIMITIVE_CODES = {
    PrimitiveType.BOOLEAN: "b",
    PrimitiveType.STRING: "s",
}
PRIMITIVE_CODES_REVERSE = {v: k for k, v in PRIMITIVE_CODES.items()}


@dataclass
class DecompressResult:
    result: list[Preset]
    count: int
    is_multiple_presets: bool


def _to_compact(preset: Preset) -> dict[str, Any]:
    params = []
    for param in preset.parameters:
        cp: dict[str, Any] = {"k": param.key, "t": TYPE_CODES[param.type], "v": param.value}
        if param.description:
            cp["d"] = param.description
        # string is the default and is left out
        if param.primitive_type and param.primitive_type != PrimitiveType.STRING:
            cp["pt"] = PRIMITIVE_CODES[param.primitive_type]
        params.append(cp)
    compact: dict[str, Any] = {"n": preset.name, "p": params}
    if preset.description:
        compact["d"] = preset.description
    return compact


def _from_compact(compact: dict[str, Any]) -> Preset:
    parameters = [
        Parameter(
            type=TYPE_CODES_REVERSE[cp["t"]],
            key=cp["k"],
            value=cp["v"],
            description=cp.get("d"),
            primitive_type=PRIMITIVE_CODES_REVERSE[cp["pt"]] if cp.get("pt") else None,
        )
        for cp in compact["p"]
    ]
    return Preset(name=compact["n"], description=compact.get("d"), parameters=parameters)


_lz = LZString()


class PresetCoder:
    @staticmethod
    def compress(presets: list[Preset]) -> str:
        payload = json.dumps([_to_compact(p) for p in presets], separators=(",", ":"), ensure_ascii=False)
        return _lz.compressToEncodedURIComponent(payload)

    @staticmethod
    def decompress(encoded: str) -> DecompressResult:
        if not encoded:
            raise ValueError("Cannot decompress empty string")

        try:
            payload = _lz.decompressFromEncodedURIComponent(encoded)
        except (KeyError, IndexError, ValueError, TypeError) as e:
            # characters outside the URI-safe alphabet or a truncated stream
            raise ValueError("Invalid compressed string") from e
        if not payload:
            raise ValueError("Invalid compressed string")

        try:
            compact = json.loads(payload)
            presets = [_from_compact(item) for item in compact]
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError("Invalid compressed string: failed to parse JSON") from e

        return DecompressResult(result=presets, count=len(presets), is_multiple_presets=len(presets) > 1)
