"""
Estimate Engine Package.

Classification and revenue attribution engine for sales estimates imported from
an external estimating platform. Answers, per fiscal year, whether an estimate
was won, lost or is still pending, which calendar years its value belongs to,
which accounts matter most (A/B/C/D segments) and which accounts hold won
business that is about to expire without a renewal.

Subpackages:
    - core: Configuration and database connectivity
    - models: Pydantic schemas and enums
    - services: Classification, attribution, segmentation and risk logic
    - jobs: Batch refresh jobs over a record store snapshot
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
