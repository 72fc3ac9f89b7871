# app.py
# Lean entrypoint: microphone -> reactive state -> haptic player + renderer over UDP.
import logging

from core.audio_pipeline import AudioPipeline
from core.mood import fallback_mood
from devices.remote.haptic_link import HapticLink
from devices.remote.scene_link import SceneLink
from devices.remote.udp_gateway import UdpGateway
from services.orchestrator_master import OrchestratorMaster

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    audio = AudioPipeline(
        samplerate=44100,
        blocksize=1024,
        channels=1,
        device=None,      # optionally set PortAudio device index or name
    )
    orch = OrchestratorMaster(audio=audio, fps=30.0, log_every=1.0)

    gateway = UdpGateway(async_send=True)
    haptics = HapticLink(ip="127.0.0.1", port=4211, gateway=gateway)
    scene = SceneLink(ip="127.0.0.1", port=4212, gateway=gateway)

    # No language model here: category phrases and sound labels go through the keyword fallback.
    orch.on_category_change(lambda category: orch.post_mood(fallback_mood(category.description)))
    orch.on_classification_change(lambda sound: orch.post_mood(fallback_mood(sound.value)))
    orch.on_pattern_change(haptics.play)
    orch.on_snapshot(scene.send)
    orch.on_snapshot(lambda snap: haptics.intensity(snap.loudness))

    try:
        orch.run()
    finally:
        haptics.stop()
        gateway.flush(timeout=1.0)
        gateway.close()
