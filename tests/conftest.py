import pathlib
import sys
import textwrap

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from narrator.config import get_settings  # noqa: E402

_FAKE_FFMPEG = """\
#!{python}
import sys

args = sys.argv[1:]
manifest = args[args.index("-i") + 1]
output = args[-1]

data = b""
with open(manifest, encoding="utf-8") as handle:
    for line in handle:
        line = line.strip()
        if not line:
            continue
        quoted = line[len("file "):]
        path = quoted[1:-1].replace("'\\\\''", "'")
        with open(path, "rb") as segment:
            data += segment.read()

with open(output, "wb") as out:
    out.write(data)
"""

_FAILING_FFMPEG = """\
#!{python}
import sys

sys.stderr.write("concat: invalid data found when processing input\\n")
sys.exit(1)
"""

_SLOW_FFMPEG = """\
#!{python}
import os
import time

with open({pid_file!r}, "w") as handle:
    handle.write(str(os.getpid()))

time.sleep(30)
"""


def _write_script(path: pathlib.Path, body: str, **fields: str) -> pathlib.Path:
    path.write_text(textwrap.dedent(body).format(python=sys.executable, **fields))
    path.chmod(0o755)
    return path


@pytest.fixture
def fake_ffmpeg(tmp_path: pathlib.Path) -> pathlib.Path:
    """Executable that concatenates the files listed in a concat manifest."""
    return _write_script(tmp_path / "fake-ffmpeg", _FAKE_FFMPEG)


@pytest.fixture
def failing_ffmpeg(tmp_path: pathlib.Path) -> pathlib.Path:
    """Executable that always exits non-zero with an error on stderr."""
    return _write_script(tmp_path / "failing-ffmpeg", _FAILING_FFMPEG)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a module-level exit event bound to the first loop."""
    from sse_starlette import sse

    app_status = getattr(sse, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


@pytest.fixture
def slow_ffmpeg(tmp_path: pathlib.Path) -> pathlib.Path:
    """Executable that records its pid in ``ffmpeg.pid`` and then hangs."""
    return _write_script(
        tmp_path / "slow-ffmpeg",
        _SLOW_FFMPEG,
        pid_file=str(tmp_path / "ffmpeg.pid"),
    )
