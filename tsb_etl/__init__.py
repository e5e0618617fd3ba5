"""TSB quarterly insurance workbook ETL.

Extracts per-company, per-branch financial figures from the regulator's quarterly
workbooks, derives the net metrics, enriches each row with its previous-year-end
and previous-quarter companions and upserts the result into PostgreSQL.
"""

__version__ = "0.1.0"
