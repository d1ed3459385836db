"""
Shared utility functions.

This subpackage includes:
- viewer configuration loading (config/viewer.yaml)
- directory helpers
- logging helpers used by the scripts and the pipeline.
"""
