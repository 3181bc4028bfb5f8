"""
Backend selection and management.

Provides a unified interface for the numerical backends that solve the
weighted normal equations.
"""

from typing import Union

from .base import BackendBase, CPUBackend, LinearModelResult
from .cpu_fp64_backend import CPUBackendFP64


_BACKENDS = {
    'cpu': CPUBackendFP64,
}


def get_backend(backend: Union[str, BackendBase] = 'auto') -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str or BackendBase
        Backend selection:
        - 'auto': Best available backend (currently the CPU backend)
        - 'cpu': CPU with NumPy (FP64)
        - a BackendBase instance is returned unchanged

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> backend = get_backend('auto')
    >>> backend.name
    'cpu_fp64'
    """
    if isinstance(backend, BackendBase):
        return backend

    if backend == 'auto':
        return CPUBackendFP64()

    if backend in _BACKENDS:
        return _BACKENDS[backend]()

    raise ValueError(
        f"Unknown backend: '{backend}'\n"
        f"Valid options: 'auto', " + ", ".join(f"'{name}'" for name in _BACKENDS)
    )


def list_available_backends() -> list:
    """List names of available backends."""
    return list(_BACKENDS)


def print_backend_info():
    """Print detailed backend information (diagnostic)."""
    print("PyGeoReg Backend Status")
    print("=" * 50)
    print(f"\nAvailable Backends:")
    for name, cls in _BACKENDS.items():
        info = cls().get_device_info()
        print(f"  {name:<8} ({info['precision']}) - {info['algorithm']}, {info['library']}")

    print(f"\nRecommended Backend:")
    print(f"  {get_backend('auto').name}")


# Export main interface
__all__ = [
    'get_backend',
    'list_available_backends',
    'print_backend_info',
    'BackendBase',
    'CPUBackend',
    'CPUBackendFP64',
    'LinearModelResult',
]


if __name__ == "__main__":
    print_backend_info()
