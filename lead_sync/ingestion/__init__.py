"""Loading fallback lead datasets and exporting snapshots with pandas."""

from .exporters import export_snapshot, snapshot_to_dataframe
from .loaders import UnsupportedFileTypeError, load_lead_patches

__all__ = ["export_snapshot", "load_lead_patches", "snapshot_to_dataframe", "UnsupportedFileTypeError"]
