"""Parse options for provenance decoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from utils.env_utils import env_bool, env_list

DEFAULT_NAMESPACE_PREFIXES: Final[tuple[str, ...]] = ("rdt:", "prov:")


@dataclass(frozen=True)
class ParseOptions:
    """Decoding policy.

    strict
        Raise on field-set disagreement within a code group and on edge
        endpoints that name unknown nodes. Lenient mode records diagnostics.
    allow_empty
        Accept blank input text as an empty document.
    namespace_prefixes
        Prefixes stripped from keys and identifier references.
    """

    strict: bool = False
    allow_empty: bool = True
    namespace_prefixes: tuple[str, ...] = DEFAULT_NAMESPACE_PREFIXES

    @classmethod
    def from_env(
        cls,
        *,
        strict: bool | None = None,
        allow_empty: bool | None = None,
    ) -> ParseOptions:
        """Build options from ``PROVGRAPH_*`` environment variables.

        Explicit arguments take precedence over the environment.

        Returns
        -------
        ParseOptions
            Resolved options.
        """
        if strict is None:
            strict = env_bool("PROVGRAPH_STRICT", default=False)
        if allow_empty is None:
            allow_empty = env_bool("PROVGRAPH_ALLOW_EMPTY", default=True)
        prefixes = env_list(
            "PROVGRAPH_NAMESPACE_PREFIXES",
            default=list(DEFAULT_NAMESPACE_PREFIXES),
        )
        return cls(
            strict=strict,
            allow_empty=allow_empty,
            namespace_prefixes=tuple(prefixes),
        )


__all__ = ["DEFAULT_NAMESPACE_PREFIXES", "ParseOptions"]
