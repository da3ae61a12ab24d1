"""
Prompt templates for LLM interactions.

This module contains the prompt templates used for strategy routing and
constraint extraction. Both prompts receive the value catalog so the
model can only choose values that exist in the corpus, and both ask for
a bare JSON object.
"""

from langchain_core.prompts import ChatPromptTemplate

ROUTING_SYSTEM_PROMPT = """You route search requests for a venture capital startup database.

Decide how literally the request's structured criteria should be applied:

- "strict": the user names exact, binding criteria such as specific locations,
  funding stages, funding ranges, named investors, or says "exactly", "only", "must".
  Documents that miss any criterion are not wanted.
- "flexible": the request is exploratory or conceptual ("promising", "similar to",
  "interesting", "like"). Semantic similarity should dominate and any structured
  hints should only nudge the ranking.

Known filter values in the database:
{catalog}

Respond with ONLY a JSON object of the form:
{{"strategy": "strict" | "flexible", "rationale": "<one sentence>"}}"""

FILTER_EXTRACTION_SYSTEM_PROMPT = """You extract structured search filters from a request
against a venture capital startup database.

Available values and numeric ranges:
{catalog}

Rules:
- Categorical fields (industry, location, funding_stage, business_model,
  lead_investor, other_investors) take a JSON list of values. Use ONLY values that
  appear in the available values above, spelled exactly as listed.
- Numeric fields (funding_amount, monthly_revenue, employee_count, founded_year)
  take an object with optional "gte" and "lte" bounds. Amounts are plain numbers
  in US dollars: "$10M" is 10000000, "$400K" is 400000.
- The current year is {current_year}. "founded in the last N years" means
  founded_year gte {current_year} minus N. "recent" means the last 3 years.
- Omit any field the request does not mention. Never invent values.

Respond with ONLY a JSON object, for example:
{{"industry": ["fintech"], "location": ["San Francisco"],
  "funding_amount": {{"gte": 10000000, "lte": 15000000}}}}
Respond with {{}} when the request names no filters."""


def get_routing_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages(
        [
            ("system", ROUTING_SYSTEM_PROMPT),
            ("human", "{query}"),
        ]
    )


def get_filter_extraction_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages(
        [
            ("system", FILTER_EXTRACTION_SYSTEM_PROMPT),
            ("human", "{query}"),
        ]
    )
