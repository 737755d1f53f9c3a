import pytest


@pytest.fixture
def write_catalog():
    """Write a frame as CSV into the config's raw directory."""
    def _write(config, name, frame):
        path = f"{config.output_dirs['raw']}/{name}"
        frame.to_csv(path, index=False)
        return path
    return _write
