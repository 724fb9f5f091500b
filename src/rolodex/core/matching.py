"""Typo-tolerant fuzzy search over contact records.

Each configured field is compared with the query by an approximate
substring alignment: the query may land anywhere inside the field value,
with insertions, deletions, substitutions and adjacent transpositions each
costing one edit. Field characters left outside the aligned window cost
``EDGE_GAP_COST`` each, so a value that equals the query outranks one that
merely contains it. Costs are normalized by the longer of the two strings,
giving 0.0 for identical text and 1.0 for unrelated text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from rolodex.models import CONTACT_FIELDS, ContactRecord, MatchResult, MatchSpan
from rolodex.utils.text import fold_text

LOGGER = logging.getLogger(__name__)

DEFAULT_FIELDS = ("name", "phone")
DEFAULT_THRESHOLD = 1.0
EDGE_GAP_COST = 0.5


@dataclass(slots=True)
class SearchConfig:
    fields: tuple[str, ...] = DEFAULT_FIELDS
    threshold: float = DEFAULT_THRESHOLD
    case_sensitive: bool = False
    all_matches: bool = False

    def __post_init__(self) -> None:
        self.fields = tuple(self.fields)
        if not self.fields:
            raise ValueError("At least one search field is required")
        unknown = [name for name in self.fields if name not in CONTACT_FIELDS]
        if unknown:
            raise ValueError(
                f"Unknown search field(s): {', '.join(unknown)}; "
                f"expected any of {', '.join(CONTACT_FIELDS)}"
            )
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {self.threshold}")


@dataclass(slots=True)
class Alignment:
    """Best alignment of a query inside one field value (normalized text)."""

    score: float
    windows: List[tuple[int, int]]


def _codes(text: str) -> np.ndarray:
    return np.fromiter((ord(char) for char in text), dtype=np.int64, count=len(text))


def align(query: str, text: str, *, all_matches: bool = False) -> Alignment:
    """Align ``query`` against ``text`` and return the normalized score.

    Both strings are expected to be normalized already and ``query`` must be
    non-empty. ``windows`` lists the half-open ranges of ``text`` that the
    query aligned to: only the best one, or every non-overlapping window of
    equal quality when ``all_matches`` is set.
    """
    m, n = len(query), len(text)
    q = _codes(query)
    t = _codes(text)
    cols = np.arange(n + 1)
    positions = np.arange(n)

    # Row 0: the window may start anywhere; skipped leading characters are cheap.
    cost = cols * EDGE_GAP_COST
    start = cols.copy()
    before_cost = before_start = None

    for i in range(1, m + 1):
        diag = cost[:-1] + (t != q[i - 1])
        up = cost[1:] + 1.0
        trans = np.full(n, np.inf)
        trans_start = np.zeros(n, dtype=np.int64)
        if before_cost is not None and n >= 2:
            swapped = (t[:-1] == q[i - 1]) & (t[1:] == q[i - 2])
            trans[1:] = np.where(swapped, before_cost[:-2] + 1.0, np.inf)
            trans_start[1:] = before_start[:-2]

        # Ties prefer diagonal, then transposition, then deletion.
        candidates = np.vstack([diag, trans, up])
        sources = np.vstack([start[:-1], trans_start, start[1:]])
        choice = np.argmin(candidates, axis=0)

        row_cost = np.empty(n + 1)
        row_start = np.empty(n + 1, dtype=np.int64)
        row_cost[0] = i
        row_start[0] = 0
        row_cost[1:] = candidates[choice, positions]
        row_start[1:] = sources[choice, positions]

        # Insertions run along the row at unit cost: a running minimum of
        # cost - column, remembering which column each minimum came from.
        shifted = row_cost - cols
        running = np.minimum.accumulate(shifted)
        origin = np.maximum.accumulate(np.where(shifted <= running, cols, 0))
        row_cost = running + cols
        row_start = row_start[origin]

        before_cost, before_start = cost, start
        cost, start = row_cost, row_start

    total = cost + (n - cols) * EDGE_GAP_COST
    best_end = int(np.argmin(total))
    score = min(float(total[best_end]) / max(m, n), 1.0)

    core = cost - start * EDGE_GAP_COST
    best_core = core[best_end]
    if best_core >= m:
        return Alignment(score=score, windows=[])

    best_window = (int(start[best_end]), best_end)
    if not all_matches:
        windows = [best_window] if best_window[0] < best_window[1] else []
        return Alignment(score=score, windows=windows)

    windows: List[tuple[int, int]] = []
    last_end = 0
    for end in np.flatnonzero(core <= best_core):
        begin = int(start[end])
        if begin < end and begin >= last_end:
            windows.append((begin, int(end)))
            last_end = int(end)
    return Alignment(score=score, windows=windows)


class FuzzyMatcher:
    """Ranks contact records against free-text queries."""

    def __init__(self, config: SearchConfig | None = None) -> None:
        self.config = config or SearchConfig()

    def search(self, collection: Sequence[ContactRecord], query: str) -> List[MatchResult]:
        config = self.config
        needle, _ = fold_text(query or "", case_sensitive=config.case_sensitive)
        if not needle:
            return [MatchResult(record=record, score=0.0) for record in collection]

        if not collection:
            return []

        scores = np.empty(len(collection))
        spans: List[List[MatchSpan]] = []
        for index, record in enumerate(collection):
            best = 1.0
            record_spans: List[MatchSpan] = []
            for name in config.fields:
                value = str(getattr(record, name))
                folded, offsets = fold_text(value, case_sensitive=config.case_sensitive)
                alignment = align(needle, folded, all_matches=config.all_matches)
                best = min(best, alignment.score)
                if alignment.score > config.threshold:
                    continue
                for begin, end in alignment.windows:
                    lo, hi = offsets[begin], offsets[end - 1] + 1
                    record_spans.append(MatchSpan(field=name, start=lo, end=hi, text=value[lo:hi]))
            scores[index] = best
            spans.append(record_spans)

        order = np.argsort(scores, kind="stable")
        results = [
            MatchResult(record=collection[idx], score=float(scores[idx]), spans=spans[idx])
            for idx in order
            if scores[idx] <= config.threshold
        ]
        LOGGER.debug(
            "Query %r matched %d of %d contacts", query, len(results), len(collection)
        )
        return results


def search(
    collection: Sequence[ContactRecord],
    query: str,
    config: SearchConfig | None = None,
) -> List[MatchResult]:
    """Return records matching ``query``, best first."""
    return FuzzyMatcher(config).search(collection, query)
