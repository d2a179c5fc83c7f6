"""Utility functions and types for pyrjmcmc.

This module contains type definitions and custom exceptions used throughout
the pyrjmcmc package:

- Type annotations for arrays, node references and the sampler protocol
- Custom exception classes for configuration and numerical failures
"""
