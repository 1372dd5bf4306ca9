"""Pytest configuration and fixtures for emwave tests."""

import logging

import numpy as np
import pytest

from emwave.models import (
    ALL_FIELD_VARIABLES,
    TEMPERATURE,
    ConstantOptics,
    LinearOptics,
    MaterialConstants,
    ProblemDescription,
    mass_fraction,
    mesh_displacement,
)
from emwave.services import AssemblyEngine
from emwave.utils.config_manager import EMWaveConfig

# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

NUM_SPECIES = 2


# Pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Mark the full finite-difference sweeps as slow."""
    for item in items:
        if "finite_difference" in item.name.lower():
            item.add_marker(pytest.mark.slow)


@pytest.fixture
def unit_material():
    """Order-one constants so residuals and finite differences are well scaled."""
    return MaterialConstants(omega=1.3, permittivity=1.0, magnetic_permeability=0.9)


@pytest.fixture
def vacuum_material():
    return MaterialConstants(omega=1.0, permittivity=1.0, magnetic_permeability=1.0)


@pytest.fixture
def tet_coordinates():
    """Skewed, positively oriented tetrahedron."""
    return np.array([
        [0.0, 0.0, 0.0],
        [1.1, 0.1, 0.0],
        [0.2, 0.9, 0.1],
        [0.1, 0.2, 1.2],
    ])


@pytest.fixture
def linear_optics():
    """Optics sensitive to temperature, both species and position."""
    return LinearOptics(
        n0=1.5,
        k0=0.2,
        reference_temperature=0.0,
        dn_dT=0.08,
        dk_dT=0.03,
        dn_dC=[0.1, -0.05],
        dk_dC=[0.02, 0.04],
        dn_dx=[0.05, -0.03, 0.02],
        dk_dx=[0.01, 0.02, -0.015],
    )


@pytest.fixture
def constant_optics():
    return ConstantOptics(n=1.4, k=0.1)


@pytest.fixture
def nodal_values():
    """Random nodal values for every unknown, with small mesh displacements."""
    rng = np.random.default_rng(20191009)
    values = {variable: rng.uniform(-1.0, 1.0, 4) for variable in ALL_FIELD_VARIABLES}
    values[TEMPERATURE] = rng.uniform(0.0, 1.0, 4)
    for w in range(NUM_SPECIES):
        values[mass_fraction(w)] = rng.uniform(0.0, 0.5, 4)
    for b in range(3):
        values[mesh_displacement(b)] = rng.uniform(-0.02, 0.02, 4)
    return values


@pytest.fixture
def coupled_problem():
    """All twelve equations with temperature, species and mesh unknowns."""
    return ProblemDescription.full_wave(temperature=True, mesh=True, num_species=NUM_SPECIES,
                                        advection=0.7, diffusion=1.2)


@pytest.fixture
def wave_problem():
    return ProblemDescription.full_wave()


@pytest.fixture
def assembly_config():
    config = EMWaveConfig()
    config.assembly.quadrature_order = 2
    config.assembly.max_workers = 2
    config.assembly.fd_step = 1e-6
    return config


@pytest.fixture
def coupled_engine(coupled_problem, unit_material, linear_optics, assembly_config):
    return AssemblyEngine(coupled_problem, unit_material, linear_optics, assembly_config)


@pytest.fixture
def farfield_data():
    """Exterior ``n2 = 1.2, k2 = 0.05`` with a complex incident field."""
    return [1.2, 0.05, 0.3, -0.2, 0.1, 0.05, 0.4, -0.25]
