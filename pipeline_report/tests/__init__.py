"""
Test package for the Pipeline Report engine.

Test modules:
- test_metric_registry: metric normalization and drill eligibility
- test_axes: axis descriptors, depth and selections from rows
- test_rows: provider payload normalization
- test_navigation: navigation stack
- test_aggregation: TOTAL row merging and suppression
- test_sequencer: request versions, epochs, loading flags
- test_drill_engine: transitions, races, errors, edits, history
- test_sql_provider: SQL builders and PostgreSQL collaborators
- test_export: DataFrame / CSV export
"""
