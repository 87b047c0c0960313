"""State Space Model implementations."""
from .linear_gaussian import LinearGaussianModel, constant_velocity_model, linear_gaussian_ssm
from .landmark_ranging import LandmarkRanging

__all__ = [
    'LinearGaussianModel',
    'constant_velocity_model',
    'linear_gaussian_ssm',
    'LandmarkRanging',
]
