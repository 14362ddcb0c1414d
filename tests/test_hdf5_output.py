"""Tests for HDF5 output format."""

import h5py
import numpy as np
import pytest

from stringwave import ControlMode, PlaybackScheduler, SimulationRegistry
from stringwave.io import HDF5ResultReader, HDF5ResultWriter


@pytest.fixture
def recorded_registry(params):
    registry = SimulationRegistry(params, control_mode=ControlMode.FUNCTION)
    registry.add_row("0.5*sin(2*pi*t)")
    second = registry.add_row("0.2")
    registry.set_row_enabled(second, True)
    return registry


def record(path, registry, n_frames=10, script_content=None):
    scheduler = PlaybackScheduler(registry)
    writer = HDF5ResultWriter(path, registry, script_content)
    for _ in range(n_frames):
        scheduler.advance(1 / 60)
        writer.write_frame(scheduler.total_steps)
    writer.finalize(runtime=0.5)
    return scheduler


def test_hdf5_writer_structure(tmp_path, recorded_registry):
    """Test file layout and metadata."""
    output_path = tmp_path / "run.h5"
    record(output_path, recorded_registry, script_content="stringwave-run -d t")

    assert output_path.exists()
    with h5py.File(output_path, "r") as f:
        assert "metadata" in f
        assert "parameters" in f
        assert "strings" in f
        assert "frames" in f

        assert f["metadata"].attrs["script_content"] == "stringwave-run -d t"
        assert len(f["metadata"].attrs["script_hash"]) == 64
        assert f["metadata"].attrs["runtime_seconds"] == 0.5

        assert f["parameters"].attrs["node_count"] == 101
        assert f["parameters"].attrs["dt"] == pytest.approx(0.005)
        assert f["parameters"].attrs["right_mode"] == "fixed"
        assert f["parameters"].attrs["control_mode"] == "function"

        assert set(f["strings"].keys()) == {"primary", "row_2"}
        assert f["strings/row_2"].attrs["expression"] == "0.2"
        assert f["strings/row_2"].attrs["handle"] == 2
        assert f["strings/primary/displacement"].shape == (10, 101)
        assert f["frames"].attrs["count"] == 10


def test_hdf5_reader(tmp_path, recorded_registry):
    """Test reading back recorded frames."""
    output_path = tmp_path / "run.h5"
    scheduler = record(output_path, recorded_registry)

    with HDF5ResultReader(output_path) as reader:
        assert reader.num_frames == 10
        assert sorted(reader.string_names) == ["primary", "row_2"]
        assert reader.parameters["length"] == pytest.approx(1.0)
        assert np.allclose(reader.positions, recorded_registry.positions())

        disp = reader.displacement("primary")
        assert disp.shape == (10, 101)
        # Last recorded frame is the live state
        assert np.array_equal(disp[-1], recorded_registry.primary.state.current)

        times = reader.times("row_2")
        assert np.all(np.diff(times) > 0)
        assert times[-1] == pytest.approx(scheduler.total_steps * 0.005)


def test_hdf5_string_enabled_mid_run(tmp_path, params):
    """A string added part way through only has the frames it was active for."""
    registry = SimulationRegistry(params)
    handle = registry.add_row("t")
    scheduler = PlaybackScheduler(registry)
    output_path = tmp_path / "late.h5"

    writer = HDF5ResultWriter(output_path, registry)
    for frame in range(6):
        if frame == 3:
            registry.set_row_enabled(handle, True)
        scheduler.advance(1 / 60)
        writer.write_frame(scheduler.total_steps)
    writer.finalize()

    with HDF5ResultReader(output_path) as reader:
        assert reader.displacement("primary").shape[0] == 6
        assert reader.displacement("row_1").shape[0] == 3
        # Synchronized to the primary's clock
        assert np.allclose(reader.times("row_1"), reader.times("primary")[3:])


def test_hdf5_rejects_node_count_change(tmp_path, registry):
    writer = HDF5ResultWriter(tmp_path / "resize.h5", registry)
    writer.write_frame(0)
    registry.reset_all(node_count=51)
    with pytest.raises(ValueError, match="Node count changed"):
        writer.write_frame(0)
    writer.finalize()


def test_hdf5_context_manager(tmp_path, registry):
    output_path = tmp_path / "ctx.h5"
    with HDF5ResultWriter(output_path, registry, compression=None) as writer:
        writer.write_frame(0)

    with h5py.File(output_path, "r") as f:
        assert f["frames"].attrs["count"] == 1
        assert "script_content" not in f["metadata"].attrs
