"""Geometric landmark metrics."""

from .normalization import hand_scale, mean_point_distance, mirror, normalize

__all__ = ["normalize", "mirror", "hand_scale", "mean_point_distance"]
