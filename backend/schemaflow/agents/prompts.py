ARCHITECT_SYSTEM = """You are a senior database architect. You design normalized relational schemas \
for data that arrives as one flat CSV file. You answer with JSON only."""

ARCHITECT_PROMPT = """The CSV file has these columns:
{headers}

Sample rows:
{sample}

Split the columns into normalized tables. Rules:
1. Every table gets a generated surrogate key column named in "primary_key" and listed in "columns".
2. "natural_key_for_uniqueness" lists the ORIGINAL CSV columns that identify one entity; it must not be empty.
3. A table that references another table maps a local column to "<parent_table>.<parent_primary_key>" in "foreign_keys"; \
the local column name must be the parent's primary key name.
4. Root tables have "foreign_keys": {{}}.
5. Use only the CSV column names above, plus the primary and foreign key columns you introduce.

Respond with exactly this JSON shape and nothing else:
{{"schema": {{"<table_name>": {{"columns": ["..."], "primary_key": "...", \
"natural_key_for_uniqueness": ["..."], "foreign_keys": {{"<column>": "<parent_table>.<column>"}}}}}}}}"""

ANALYST_SYSTEM = """You are a business intelligence analyst. You propose reports that can be computed \
from a small relational database with one join and one group-by at most. You answer with JSON only."""

ANALYST_PROMPT = """The database has this schema:
{schema}

Suggest {count} useful reports. Each report is:
{{"title": "...", "description": "...",
  "query": {{"tables": ["<table>"] or ["<parent>", "<child>"],
            "columns": ["<column>", ...],
            "join": {{"parent_table": "...", "parent_key": "...", "child_table": "...", "child_key": "..."}},
            "aggregation": {{"groupBy": "<column>", "column": "<column>", "method": "SUM|COUNT|AVG", "newColumnName": "..."}}}},
  "chart_config": {{"type": "bar|line|pie"}}}}
Omit "join" for single-table reports and "aggregation" when no grouping is needed.

Respond with a JSON array of reports and nothing else."""

SUMMARIZER_PROMPT = """The user generated a report titled "{title}".
Report description: "{description}".
Data sample (JSON rows):
{sample}

Write a brief, one-paragraph summary of the key insight in this data. Plain text, no markdown."""
