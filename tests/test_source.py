"""Tests for the variable-rate buffer source."""

import numpy as np
import pytest

from moodfx.source import BufferSource, load_source


class TestBufferSource:
    """Block reads at different playback rates."""

    @pytest.fixture
    def counting(self):
        """Sample value equals its index, so reads are easy to check."""
        ramp = np.arange(100, dtype=np.float32)
        return BufferSource(np.vstack([ramp, -ramp]), 100)

    def test_mono_is_duplicated_to_stereo(self):
        source = BufferSource(np.ones(10, dtype=np.float32), 100)
        assert source.channels == 2
        assert source.frames == 10

    def test_unity_rate_reads_samples(self, counting):
        block = counting.read(4)
        assert block.shape == (2, 4)
        np.testing.assert_array_equal(block[0], [0, 1, 2, 3])
        np.testing.assert_array_equal(block[1], [0, -1, -2, -3])
        np.testing.assert_array_equal(counting.read(2)[0], [4, 5])

    def test_double_rate_skips(self, counting):
        counting.playback_rate = 2.0
        np.testing.assert_array_equal(counting.read(4)[0], [0, 2, 4, 6])

    def test_half_rate_interpolates(self, counting):
        counting.playback_rate = 0.5
        np.testing.assert_allclose(counting.read(4)[0], [0.0, 0.5, 1.0, 1.5])
        assert counting.position == pytest.approx(0.02)

    def test_reading_past_the_end_pads_with_silence(self, counting):
        counting.seek(0.97)
        block = counting.read(8)
        assert block[0, 0] == pytest.approx(97.0)
        assert not block[0, 3:].any()
        assert counting.finished
        assert not counting.read(8).any()

    def test_seek_clamps(self, counting):
        counting.seek(-1.0)
        assert counting.position == 0.0
        counting.seek(10.0)
        assert counting.position == pytest.approx(1.0)

    def test_duration(self, counting):
        assert counting.duration == pytest.approx(1.0)


class TestLoadSource:
    """Decoding files from disk."""

    def test_missing_file(self, tmp_path):
        pytest.importorskip("pedalboard")
        with pytest.raises(ValueError):
            load_source(str(tmp_path / "nope.wav"), 44100)

    def test_round_trip_wav(self, tmp_path):
        pytest.importorskip("pedalboard")
        from pedalboard.io import AudioFile

        path = tmp_path / "tone.wav"
        tone = 0.25 * np.sin(np.linspace(0, 200 * np.pi, 22050, dtype=np.float32))
        with AudioFile(str(path), "w", 22050, 1) as f:
            f.write(tone[np.newaxis, :])

        source = load_source(str(path), 44100)
        assert source.channels == 2
        assert source.sample_rate == 44100
        assert source.duration == pytest.approx(1.0, abs=0.01)
        assert source.path == str(path)
