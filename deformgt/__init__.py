"""Ground-truth evaluation for deformable monocular reconstructions: stereo matching, scale, errors and geometry."""

__version__ = "0.1.0"
__all__ = ["calculator", "evaluation", "geometry"]