"""
Selection state and timeline interaction.

This subpackage includes:
- the notification bus and its event names
- per-timeline selection state and the owning selection context
- drag-based range selection with a snapping highlight band
- timelines that translate pointer positions into epoch selections.
"""
