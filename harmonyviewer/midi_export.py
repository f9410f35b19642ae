"""StepMidiExporter: writes a score's harmonic steps as a Standard MIDI File."""

from midiutil import MIDIFile

from harmonyviewer.score_models import Step

# In midiutil Format 1 MIDI, track 0 is the conductor/tempo track.
TRACK_CONDUCTOR = 0  # Tempo only — never receives notes
TRACK_STEPS = 1


class StepMidiExporter:
    """
    Write one chord per beat, in step order, so a walkthrough can be auditioned offline.

    Steps that resolved to no pitches still take up their beat as silence,
    keeping beat ``n`` aligned with step ``n``.
    """

    DEFAULT_TEMPO = 60     # BPM — one step per second
    DEFAULT_VELOCITY = 80  # MIDI velocity (0-127)

    def __init__(
        self,
        tempo: int = DEFAULT_TEMPO,
        velocity: int = DEFAULT_VELOCITY,
        channel: int = 0,
    ) -> None:
        self.tempo = tempo
        self.velocity = velocity
        self.channel = channel

    def export(self, steps: list[Step], output_path: str) -> None:
        """
        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = MIDIFile(numTracks=2, removeDuplicates=False, deinterleave=False)
        midi.addTempo(TRACK_CONDUCTOR, 0, self.tempo)
        midi.addTrackName(TRACK_STEPS, 0, "Harmonic Steps")

        for beat, step in enumerate(steps):
            for pitch in step.pitches:
                midi.addNote(
                    track=TRACK_STEPS,
                    channel=self.channel,
                    pitch=pitch,
                    time=beat,
                    duration=1,
                    volume=self.velocity,
                )

        with open(output_path, "wb") as f:
            midi.writeFile(f)
