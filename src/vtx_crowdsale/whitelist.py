from __future__ import annotations

from typing import List

from eth_utils import is_address, to_checksum_address


def load_whitelist(path: str | None) -> List[str]:
    """Reads investor addresses, one per line. '#' starts a comment line."""
    if not path:
        return []
    out: List[str] = []
    seen = set()
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            w = line.strip()
            if not w or w.startswith("#"):
                continue
            if not is_address(w):
                raise ValueError(f"{path}:{lineno}: not an address: {w!r}")
            addr = to_checksum_address(w)
            if addr in seen:
                continue
            seen.add(addr)
            out.append(addr)
    # File order is kept; the whitelist transaction replays it as written.
    return out
