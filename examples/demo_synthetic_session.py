# examples/demo_synthetic_session.py
#
# Drives the reactive pipeline with generated audio instead of a microphone.
# Sequence: silence -> soft hum -> loud tone; prints every category / haptic change.

import logging

import numpy as np

from core.audio_pipeline import AudioPipeline
from services.orchestrator_master import OrchestratorMaster

SR = 44100
BLOCK = 1024


def tone(freq: float, amplitude: float) -> np.ndarray:
    t = np.arange(BLOCK) / SR
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    audio = AudioPipeline(samplerate=SR, blocksize=BLOCK)
    # No device: the orchestrator gets frames from feed() below.
    orch = OrchestratorMaster(autotick=False)
    audio.subscribe(orch.post_analysis)
    orch.on_category_change(lambda c: print(f"  category -> {c.value}"))
    orch.on_pattern_change(lambda p, level: print(f"  haptic   -> {p.value} @ {level:.2f}"))

    orch.start()

    try:
        for label, block, batch in [
            ("SILENCE", np.zeros(BLOCK, dtype=np.float32), [("silence", 0.9)]),
            ("SOFT HUM", tone(120.0, 0.003), [("wind", 0.6), ("rain", 0.2)]),
            ("LOUD TONE", tone(1000.0, 0.9), [("siren", 0.8)]),
        ]:
            print(label)
            orch.post_classification(batch)
            for _ in range(45):
                audio.feed(block)
                orch.tick()
            snap = orch.snapshot()
            b = snap.bands
            print(
                f"  level={snap.loudness:.2f} "
                f"bands={b.low:.2f}/{b.mid:.2f}/{b.high:.2f}/{b.very_high:.2f} "
                f"class={snap.classification.value}"
            )
    finally:
        orch.stop()


if __name__ == "__main__":
    main()
