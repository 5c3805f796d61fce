'''
Estimate Engine Test Suite

Test Modules:
-------------
- test_status_classifier.py: Won/lost/pending rules and near-miss phrases
- test_year_attribution.py: Date priority chain and lenient date parsing
- test_revenue_allocation.py: Price resolution, multi-year proration, exclusions
- test_deduplication.py: First-seen-wins dedupe
- test_segmentation.py: A/B/C boundaries, segment D, downgrades
- test_renewal_risk.py: At-risk window, renewal suppression, duplicates
- test_reporting.py: Win/loss statistics
- test_engine.py: End-to-end snapshot runs and data-quality counts
- test_record_store.py: Pagination, row mapping, segment write-back
- test_database.py: Pool singleton lifecycle
- test_jobs.py: Segment refresh and at-risk jobs, batch runner

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
