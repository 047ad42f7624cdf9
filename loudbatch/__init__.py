"""loudbatch package for batch loudness analysis of audio libraries.

This package measures integrated loudness, true peak and loudness range with
ffmpeg, classifies every file against quality thresholds, and follows the
progress of an external normalization script.
"""

__all__ = ["core", "services", "utils", "reports", "cli"]
__version__ = "1.0.0"
