"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .vehicle import ClientFactory, VehicleFactory, ServiceFactory

__all__ = [
    "ClientFactory",
    "VehicleFactory",
    "ServiceFactory",
]
