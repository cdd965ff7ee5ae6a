"""ODI: on-demand responsive image derivatives with focal-point cropping."""

__version__ = "0.1.0"
