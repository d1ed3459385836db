"""
Data model and data-source utilities.

This subpackage provides:
- the SquareMatrix container used for every loaded confusion matrix
- epoch records and the dense positional epoch catalog
- asynchronous matrix and label sources (in-memory, CSV, predictions)
- dataset descriptions loaded from YAML.
"""
