"""I/O for string simulation results."""

from stringwave.io.hdf5 import HDF5ResultReader, HDF5ResultWriter

__all__ = [
    "HDF5ResultWriter",
    "HDF5ResultReader",
]
