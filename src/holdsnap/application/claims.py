from __future__ import annotations
import copy, json
from typing import Any

from ..adapters.snapshot_json import write_json_atomic
from ..domain.decoding import hex_to_decimal
from ..domain.errors import ParseError


def convert_claim_amounts(doc: dict[str, Any]) -> dict[str, Any]:
    """
    Merkle-distribution file: rewrite every claims[*].amount from 0x-hex to
    base 10. Returns a new document; a malformed amount raises ParseError.
    """
    claims = doc.get("claims") if isinstance(doc, dict) else None
    if not isinstance(claims, dict):
        raise ParseError("document has no 'claims' object")
    out = copy.deepcopy(doc)
    for address, claim in out["claims"].items():
        if not isinstance(claim, dict) or "amount" not in claim:
            raise ParseError(f"claim for {address} has no amount")
        try:
            claim["amount"] = hex_to_decimal(claim["amount"])
        except ParseError as e:
            raise ParseError(f"claim for {address}: {e}") from e
    return out


def convert_claims_file(src: str, dst: str) -> int:
    try:
        with open(src, "r") as f:
            doc = json.load(f)
    except json.JSONDecodeError as e:
        raise ParseError(f"{src} is not valid JSON: {e}") from e
    out = convert_claim_amounts(doc)
    write_json_atomic(dst, out, indent=2)
    return len(out["claims"])
