"""
Pipeline Report drill-down package.

In-process navigation and aggregation engine behind the Pipeline Report
dashboard of the freight-forwarding ERP. A user pivots the report across
independent axes (salesperson, region/sector, product/service), descends
through the levels of each axis, jumps straight to transaction detail by
clicking a financial metric, and navigates back to the exact prior view.

Subpackages:
    - core: Configuration, logging, error taxonomy and database pool
    - models: Pydantic schemas and enums
    - services: Metric registry, axes, navigation stack, request sequencer,
      aggregation merger, drill engine and reference collaborators
    - sql: Parameterized SQL for the PostgreSQL report provider
    - tests: pytest suite

The engine has no dependency on any rendering technology: a host UI feeds it
user intents and renders the immutable snapshots it produces.
"""

__version__ = "1.0.0"
