"""
Small explainability formatting helpers.

Used by the CLI to print compact summaries of detected trips.
"""

from __future__ import annotations

from tripmemories.domain.models import ClusterDraft


def one_line_summary(draft: ClusterDraft) -> str:
    """Render a compact single-line summary for a trip draft."""
    p = draft.params
    parts = [f"{p.classification_label} score={p.score:.2f}", f"{p.first_date}..{p.last_date}"]
    parts.append(f"days={p.away_days} nights={p.nights}")
    if p.place:
        parts.append(p.place)
    parts.append(f"members={p.member_count}")
    return " | ".join(parts)


def term_lines(draft: ClusterDraft) -> list[str]:
    """One line per non-zero score term, largest contribution first."""
    terms = sorted(draft.params.score_terms, key=lambda t: (-abs(t.contribution), t.name))
    return [
        f"{t.name}: value={t.value:.3f} weight={t.weight:.2f} contribution={t.contribution:+.3f}"
        for t in terms
        if t.contribution != 0
    ]
