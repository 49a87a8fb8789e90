"""Optional third-party imports and their availability flags.

The host runs headless without sounddevice, rtmidi or aalink; commands
that need a missing library check the matching ``HAS_*`` flag and raise.
"""

from __future__ import annotations

# -- pedalboard (effect DSP + audio file decoding) --------------------------

try:
    import pedalboard
    from pedalboard.io import AudioFile
    HAS_PEDALBOARD = True
except ImportError:
    pedalboard = None  # type: ignore[assignment]
    AudioFile = None  # type: ignore[assignment,misc]
    HAS_PEDALBOARD = False

# -- aalink (shared tempo for synced delays) ------------------------------

try:
    import aalink
    HAS_LINK = True
except ImportError:
    aalink = None  # type: ignore[assignment]
    HAS_LINK = False

# -- python-rtmidi (pad controller input) -----------------------------------

try:
    import rtmidi
    HAS_RTMIDI = True
except ImportError:
    rtmidi = None  # type: ignore[assignment]
    HAS_RTMIDI = False

# -- mido (pad message decoding) ---------------------------------------------

try:
    import mido
    HAS_MIDO = True
except ImportError:
    mido = None  # type: ignore[assignment]
    HAS_MIDO = False

# -- sounddevice (output stream) ----------------------------------------------

# sounddevice raises OSError when the PortAudio library itself is missing.
try:
    import sounddevice as sd
    HAS_SOUNDDEVICE = True
except (ImportError, OSError):
    sd = None  # type: ignore[assignment]
    HAS_SOUNDDEVICE = False

# -- numpy (block buffers, always required) --------------------------------

import numpy as np
