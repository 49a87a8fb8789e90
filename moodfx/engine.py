"""Real-time audio engine (sounddevice output callback)."""

from __future__ import annotations

import logging

from moodfx.deps import HAS_SOUNDDEVICE, sd, np
from moodfx.registry import EffectRegistry
from moodfx.transport import Transport


logger = logging.getLogger(__name__)


class AudioEngine:
    """
    Pulls one block from the effect chain per audio callback.

    Per callback:
      1. Read the source block (silence unless the transport is playing)
      2. Run it through the current chain (gain -> units -> limiter)
      3. Apply master gain and clip
      4. Write to output buffer

    The chain is looked up once per block, so a source reload swaps the
    whole chain between two callbacks.
    """

    def __init__(self, registry: EffectRegistry, transport: Transport,
                 buffer_size: int = 512, output_channels: int = 2):
        self.registry = registry
        self.transport = transport
        self.sample_rate = registry.sample_rate
        self.buffer_size = buffer_size
        self.output_channels = output_channels
        self.master_gain: float = 1.0
        self._stream = None

    # -- audio callback ------------------------------------------------------

    def render(self, frames: int):
        """Render one (frames, channels) output block."""
        try:
            block = self.registry.render(frames, playing=self.transport.playing)
        except Exception:
            logger.exception("[Audio] chain render failed")
            return np.zeros((frames, self.output_channels), dtype=np.float32)

        out = block.T  # (frames, channels)
        if out.shape[1] == 1 and self.output_channels == 2:
            out = np.column_stack([out, out])
        elif out.shape[1] > self.output_channels:
            out = out[:, :self.output_channels]

        out = out * self.master_gain
        np.clip(out, -1.0, 1.0, out=out)
        return out.astype(np.float32, copy=False)

    def _callback(self, outdata, frames: int, time_info, status):
        if status:
            logger.warning("[Audio] %s", status)
        outdata[:] = self.render(frames)

    # -- start / stop --------------------------------------------------------

    def start(self, output_device=None):
        if not HAS_SOUNDDEVICE:
            raise RuntimeError("sounddevice not installed")
        if self.running:
            return
        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            blocksize=self.buffer_size,
            channels=self.output_channels,
            dtype="float32",
            callback=self._callback,
            device=output_device,
        )
        self._stream.start()
        logger.info(
            "[Audio] Started sr=%d buf=%d ch=%d",
            self.sample_rate,
            self.buffer_size,
            self.output_channels,
        )

    def stop(self):
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("[Audio] Stopped")

    @property
    def running(self) -> bool:
        return self._stream is not None and self._stream.active
