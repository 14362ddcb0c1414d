"""HDF5 recording of string simulation runs.

Layout of a result file::

    /metadata            attrs: created_at, version, script_hash, script_content
    /parameters          attrs: length, tension, ..., wave_speed, dx, dt
                         dataset: positions (N,)
    /strings/<name>      attrs: handle, expression
        displacement     (frames, N) float64, gzip
        time             (frames,) float64
    /frames              attrs: count; dataset: step (frames,) int64

``<name>`` is ``primary`` or ``row_<handle>``. A string only has rows for
the frames in which it was active.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import h5py
import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from stringwave.core.registry import SimulationInstance, SimulationRegistry


def instance_name(instance: SimulationInstance) -> str:
    """HDF5 group name of a string instance."""
    return "primary" if instance.is_primary else f"row_{instance.handle}"


class HDF5ResultWriter:
    """Streaming writer for string displacement snapshots.

    Example:
        >>> writer = HDF5ResultWriter("run.h5", registry)
        >>> for _ in range(100):
        ...     scheduler.advance(1 / 60)
        ...     writer.write_frame(scheduler.total_steps)
        >>> writer.finalize(runtime=1.2)
    """

    def __init__(
        self,
        filename: str | Path,
        registry: SimulationRegistry,
        script_content: str | None = None,
        compression: str | None = "gzip",
        compression_level: int = 4,
    ):
        """Initialize HDF5 writer.

        Args:
            filename: Output file path
            registry: Simulation context to record
            script_content: Command line or script for reproducibility
            compression: Compression algorithm ('gzip', 'lzf', None)
            compression_level: Compression level (0-9 for gzip)
        """
        self.filename = Path(filename)
        self.registry = registry
        self.node_count = registry.params.node_count
        self.compression = compression
        self.compression_opts = compression_level if compression == "gzip" else None

        self.file = h5py.File(self.filename, "w")
        self._frames = 0
        self._write_metadata(script_content)

        self._strings = self.file.create_group("strings")
        frames = self.file.create_group("frames")
        self._step_dataset = frames.create_dataset(
            "step", shape=(0,), maxshape=(None,), dtype=np.int64
        )

    def _write_metadata(self, script_content: str | None) -> None:
        from stringwave import __version__

        meta = self.file.create_group("metadata")
        if script_content:
            meta.attrs["script_hash"] = hashlib.sha256(script_content.encode()).hexdigest()
            meta.attrs["script_content"] = script_content
        meta.attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        meta.attrs["version"] = __version__

        params = self.registry.params
        group = self.file.create_group("parameters")
        for name in (
            "length",
            "tension",
            "mass_density",
            "damping",
            "node_count",
            "courant",
            "wave_speed",
            "dx",
            "dt",
        ):
            group.attrs[name] = getattr(params, name)
        group.attrs["right_mode"] = self.registry.right_mode.value
        group.attrs["control_mode"] = self.registry.control_mode.value
        group.create_dataset("positions", data=params.positions())

    def _string_group(self, instance: SimulationInstance) -> h5py.Group:
        name = instance_name(instance)
        if name in self._strings:
            return self._strings[name]

        group = self._strings.create_group(name)
        group.attrs["handle"] = int(instance.handle)
        if not instance.is_primary:
            group.attrs["expression"] = self.registry.row(instance.handle).applied.text
        group.create_dataset(
            "displacement",
            shape=(0, self.node_count),
            maxshape=(None, self.node_count),
            chunks=(1, self.node_count),
            dtype=np.float64,
            compression=self.compression,
            compression_opts=self.compression_opts,
        )
        group.create_dataset("time", shape=(0,), maxshape=(None,), dtype=np.float64)
        return group

    def write_frame(self, step: int) -> None:
        """Append the current displacement of every active string.

        Args:
            step: Physical step count at this frame

        Raises:
            ValueError: If the node count changed since the writer was created
        """
        if self.registry.params.node_count != self.node_count:
            raise ValueError(
                f"Node count changed from {self.node_count} to "
                f"{self.registry.params.node_count} during recording"
            )

        for instance in self.registry.active_instances():
            group = self._string_group(instance)
            disp = group["displacement"]
            times = group["time"]
            n = disp.shape[0]
            disp.resize(n + 1, axis=0)
            disp[n] = instance.state.current
            times.resize(n + 1, axis=0)
            times[n] = instance.state.time_elapsed

        self._step_dataset.resize(self._frames + 1, axis=0)
        self._step_dataset[self._frames] = step
        self._frames += 1

    def finalize(self, runtime: float | None = None) -> None:
        """Write summary attributes and close the file."""
        self.file["frames"].attrs["count"] = self._frames
        if runtime is not None:
            self.file["metadata"].attrs["runtime_seconds"] = runtime
        self.file.close()

    def __enter__(self) -> HDF5ResultWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.file:
            self.finalize()


class HDF5ResultReader:
    """Read back a file written by :class:`HDF5ResultWriter`."""

    def __init__(self, filename: str | Path):
        self.filename = Path(filename)
        self.file = h5py.File(self.filename, "r")

    @property
    def parameters(self) -> dict:
        return dict(self.file["parameters"].attrs)

    @property
    def positions(self) -> NDArray[np.floating]:
        return self.file["parameters/positions"][:]

    @property
    def string_names(self) -> list[str]:
        return list(self.file["strings"].keys())

    @property
    def num_frames(self) -> int:
        return int(self.file["frames"].attrs.get("count", self.file["frames/step"].shape[0]))

    def displacement(self, name: str = "primary") -> NDArray[np.floating]:
        """Displacement history (frames, N) of one string."""
        return self.file[f"strings/{name}/displacement"][:]

    def times(self, name: str = "primary") -> NDArray[np.floating]:
        return self.file[f"strings/{name}/time"][:]

    def close(self) -> None:
        self.file.close()

    def __enter__(self) -> HDF5ResultReader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
