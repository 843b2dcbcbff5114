"""
Tests for prober output parsing, the ffprobe adapter, and remote probing.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from asset_normalizer.adapters.media.ffprobe import FfprobeProber
from asset_normalizer.adapters.mock import MockProber
from asset_normalizer.core.errors import ProbeFormatError, ProbeUnavailable
from asset_normalizer.core.models.media import SourceDimensions
from asset_normalizer.core.services import probe as probe_service
from asset_normalizer.core.services.probe import parse_probe_output, probe_remote


class TestParseProbeOutput:
    def test_basic(self):
        dims = parse_probe_output("1920,1080,12.5\n")
        assert dims == SourceDimensions(width=1920, height=1080, duration_seconds=12.5)

    def test_first_non_empty_line(self):
        dims = parse_probe_output("\n\n640,480,3.0\n1280,720,9.0\n")
        assert (dims.width, dims.height) == (640, 480)

    def test_unavailable_fields_degrade_to_zero(self):
        dims = parse_probe_output("1280,720,N/A")
        assert dims.duration_seconds == 0.0
        assert dims.known

    def test_garbage_width(self):
        dims = parse_probe_output("abc,720,1.0")
        assert dims.width == 0
        assert not dims.known

    @pytest.mark.parametrize("text", ["", "1920,1080", "just text"])
    def test_too_few_fields(self, text):
        with pytest.raises(ProbeFormatError) as exc:
            parse_probe_output(text)
        assert exc.value.stage == "probe"


class TestFfprobeProber:
    def test_command(self):
        prober = FfprobeProber(read_interval_seconds=5)
        with patch("shutil.which", return_value="/usr/bin/ffprobe"):
            argv = prober.build_command(Path("/tmp/in.mp4"))
        assert argv[0] == "/usr/bin/ffprobe"
        assert argv[argv.index("-select_streams") + 1] == "v:0"
        assert argv[argv.index("-show_entries") + 1] == "stream=width,height,duration"
        assert argv[argv.index("-of") + 1] == "csv=p=0"
        assert argv[argv.index("-read_intervals") + 1] == "%+5"
        assert argv[-1] == "/tmp/in.mp4"

    def test_command_without_read_interval(self):
        with patch("shutil.which", return_value=None):
            argv = FfprobeProber(read_interval_seconds=None).build_command(Path("a.mp4"))
        assert "-read_intervals" not in argv
        assert argv[0] == "ffprobe"

    def test_missing_binary(self):
        with patch("shutil.which", return_value=None):
            with pytest.raises(ProbeUnavailable):
                FfprobeProber().probe(Path("a.mp4"))

    def test_success(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="1080,1920,30.0\n", stderr="")
        with patch("shutil.which", return_value="/usr/bin/ffprobe"), \
             patch("subprocess.run", return_value=completed) as run:
            dims = FfprobeProber(timeout=7).probe(Path("a.mp4"))
        assert (dims.width, dims.height, dims.duration_seconds) == (1080, 1920, 30.0)
        assert run.call_args.kwargs["timeout"] == 7

    def test_non_zero_exit(self):
        completed = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="moov atom not found")
        with patch("shutil.which", return_value="/usr/bin/ffprobe"), \
             patch("subprocess.run", return_value=completed):
            with pytest.raises(ProbeUnavailable) as exc:
                FfprobeProber().probe(Path("a.mp4"))
        assert "moov atom not found" in exc.value.diagnostic

    def test_timeout(self):
        with patch("shutil.which", return_value="/usr/bin/ffprobe"), \
             patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="ffprobe", timeout=15)):
            with pytest.raises(ProbeUnavailable):
                FfprobeProber().probe(Path("a.mp4"))

    def test_malformed_output(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="1920\n", stderr="")
        with patch("shutil.which", return_value="/usr/bin/ffprobe"), \
             patch("subprocess.run", return_value=completed):
            with pytest.raises(ProbeFormatError):
                FfprobeProber().probe(Path("a.mp4"))


def _response(body: bytes, status: int = 206) -> MagicMock:
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


class TestProbeRemote:
    def test_report(self, catalog):
        prober = MockProber(SourceDimensions(width=1920, height=1080, duration_seconds=61.0))
        with patch("urllib.request.urlopen", return_value=_response(b"\x00" * 64)) as urlopen:
            report = probe_remote("https://cdn.example.com/v.mp4", prober, catalog)

        request = urlopen.call_args.args[0]
        assert request.get_header("Range") == f"bytes=0-{probe_service.REMOTE_PROBE_BYTES}"
        assert report.width == 1920
        assert report.formatted_ratio == "16:9"
        assert report.standard_format == "1.91:1"
        assert report.original_ratio == pytest.approx(1920 / 1080)
        assert report.duration == 61.0

    def test_temp_file_removed(self, catalog):
        prober = MockProber()
        with patch("urllib.request.urlopen", return_value=_response(b"\x00" * 64)):
            probe_remote("https://cdn.example.com/v.mp4", prober, catalog)
        assert prober.probed
        assert not prober.probed[0].exists()
        assert not prober.probed[0].parent.exists()

    def test_temp_file_removed_on_error(self, catalog):
        prober = MockProber(error=ProbeUnavailable("boom"))
        with patch("urllib.request.urlopen", return_value=_response(b"\x00" * 64)):
            with pytest.raises(ProbeUnavailable):
                probe_remote("https://cdn.example.com/v.mp4", prober, catalog)
        assert not prober.probed[0].parent.exists()

    def test_bad_status(self, catalog):
        with patch("urllib.request.urlopen", return_value=_response(b"", status=404)):
            with pytest.raises(ProbeUnavailable):
                probe_remote("https://cdn.example.com/v.mp4", MockProber(), catalog)

    def test_network_error(self, catalog):
        with patch("urllib.request.urlopen", side_effect=OSError("connection refused")):
            with pytest.raises(ProbeUnavailable) as exc:
                probe_remote("https://cdn.example.com/v.mp4", MockProber(), catalog)
        assert "connection refused" in exc.value.message

    def test_zero_dimensions(self, catalog):
        prober = MockProber(SourceDimensions(width=0, height=0))
        with patch("urllib.request.urlopen", return_value=_response(b"\x00" * 64)):
            with pytest.raises(ProbeFormatError):
                probe_remote("https://cdn.example.com/v.mp4", prober, catalog)
