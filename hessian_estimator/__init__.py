"""Gradient-covariance Hessian estimation for stacked autoencoders."""

__version__ = "0.1.0"
