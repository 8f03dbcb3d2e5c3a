"""
Utility modules for the premium matrix orchestrator
"""
from .config_loader import MatrixConfig, load_matrix_config

__all__ = [
    'MatrixConfig',
    'load_matrix_config',
]
