# auction_sheets/runs.py
"""Per-seller query plans.

A run pairs a destination tab with the Browse queries whose results land
there; runs are rebuilt from configuration on every sync.
"""
from typing import Iterable, List
from pydantic import BaseModel, ConfigDict
from .rows import CaseHit
from .schemas import RunDefinition

CASE_HITS_TAB = "CASE HITS"
CASE_HIT_QUERY_SUFFIX = "&limit=200&filter=price:[..10],priceCurrency:USD,buyingOptions:{AUCTION}"


class Run(BaseModel):
    model_config = ConfigDict(frozen=True)

    tab: str
    seller: str
    queries: tuple[str, ...] = ()


def tab_name(label: str, seller: str) -> str:
    return f"{label} - {seller}"


def inject_seller(query: str, seller: str) -> str:
    """Add `sellers:{seller}` to the query's filter, creating one if needed.

    The clause goes right after the first filter term so the remaining terms
    (and any later &params) stay untouched.
    """
    clause = f"sellers:{{{seller}}}"
    start = query.find("filter=")
    if start < 0:
        return f"{query}&filter={clause}"
    cut = len(query)
    for sep in (",", "&"):
        pos = query.find(sep, start)
        if 0 <= pos < cut:
            cut = pos
    return f"{query[:cut]},{clause}{query[cut:]}"


def plan_runs(definitions: Iterable[RunDefinition], sellers: Iterable[str]) -> List[Run]:
    definitions = list(definitions)
    plans = []
    for seller in sellers:
        for d in definitions:
            plans.append(Run(
                tab=tab_name(d.sheet, seller),
                seller=seller,
                queries=tuple(inject_seller(q, seller) for q in d.queries),
            ))
    return plans


def case_hit_query(hit: CaseHit) -> str:
    return f"{hit.sport} {hit.name} {hit.set_name}".strip() + CASE_HIT_QUERY_SUFFIX


def plan_case_hit_runs(case_hits: Iterable[CaseHit], sellers: Iterable[str]) -> List[Run]:
    queries = [case_hit_query(h) for h in case_hits]
    return [
        Run(
            tab=tab_name(CASE_HITS_TAB, seller),
            seller=seller,
            queries=tuple(inject_seller(q, seller) for q in queries),
        )
        for seller in sellers
    ]
