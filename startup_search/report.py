"""
Markdown report for search results.

Pure formatting of a FusedResult; no ranking or filtering happens here.
"""

from startup_search.core.schemas import FusedResult


def _millions(amount: float) -> str:
    return f"${amount / 1_000_000:.1f}M"


def _thousands(amount: float) -> str:
    return f"${amount / 1_000:.0f}K"


def render_markdown(result: FusedResult) -> str:
    """Format ranked startups as a numbered markdown list."""
    count = len(result.hits)
    if count == 0:
        return "No startups found matching your criteria.\n"

    lines = [f"Found {count} startup{'s' if count > 1 else ''} matching your criteria:", ""]
    for index, hit in enumerate(result.hits, start=1):
        doc = hit.document
        lines.append(f"{index}. **{doc.company_name}**")
        lines.append(f"   {doc.location} | {doc.industry} | {doc.business_model}")
        lines.append(f"   {doc.funding_stage} - {_millions(doc.funding_amount)}")
        lines.append(
            f"   {doc.employee_count} employees | {_thousands(doc.monthly_revenue)} MRR"
        )
        lines.append(f"   Lead: {doc.lead_investor}")
        lines.append(f"   {doc.description}")
        lines.append("")

    return "\n".join(lines)
