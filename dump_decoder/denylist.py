"""Known-fabricated values that must never reach a report.

These entries were observed in summaries produced from misread dumps: 0x65F4
came from reading the code at the wrong header offset, 0x1234 is a
placeholder that showed up as a "decoded" stop code, and the driver names
are short garbled tokens that matched the filename pattern in unrelated text.
DEFAULT_DENYLIST is built once at import and is shared read-only by every
decode call.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable

FABRICATED_BUG_CHECK_CODES = frozenset({
    0x65F4,
    0x1234,
})

FABRICATED_MODULE_NAMES = frozenset({
    'wxr.sys',
    'web.sys',
    'vs.sys',
    'xxx.sys',
    'test.sys',
    'unknown.sys',
    'fake.sys',
    'temp.sys',
    'dummy.sys',
})


@dataclass(frozen=True)
class Denylist:
    codes: FrozenSet[int]
    module_names: FrozenSet[str]

    def rejects_code(self, code: int) -> bool:
        return code in self.codes

    def rejects_module(self, name: str) -> bool:
        return name.lower() in self.module_names

    def extend(self, codes: Iterable[int] = (), module_names: Iterable[str] = ()) -> "Denylist":
        """Return a new denylist with extra entries. Entries are never removed."""
        return Denylist(
            codes=self.codes | frozenset(codes),
            module_names=self.module_names | frozenset(n.lower() for n in module_names),
        )


DEFAULT_DENYLIST = Denylist(
    codes=FABRICATED_BUG_CHECK_CODES,
    module_names=FABRICATED_MODULE_NAMES,
)
