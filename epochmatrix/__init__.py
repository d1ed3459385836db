"""
Top-level package for confusion-matrix timeline analysis.

This package contains modules for:
- square confusion matrices and per-dataset epoch catalogs
- loading matrices and class labels from in-memory, CSV and prediction sources
- epoch selection state and drag/brush interaction on timelines
- per-cell content calculation (single-epoch heat cells, multi-epoch lines)
- the asynchronous update pipeline that ties selection to content
- shared configuration and logging helpers

The rendering of cells is left to an external renderer which receives the
computed per-cell content.
"""
