"""
Cell content calculation and the update pipeline.

This subpackage offers:
- single-epoch (heat) and multi-epoch (line) cell content calculators
- per-class measures (false positives/negatives, precision, class size)
- synchronization of epoch ranges across datasets
- the asynchronous update cycle that loads, checks and aggregates data.
"""
