"""Stage plans driven end-to-end with fake media services."""

import asyncio

import pytest

from distortion_modules.jobs import (
    STAGE_PLANS,
    Job,
    JobNotifier,
    build_services,
    new_job_id,
    run_pipeline,
    stages_for,
)
from distortion_modules.jobs.progress import DONE_MESSAGE, FAILURE_MESSAGE
from distortion_modules.jobs.stages import DistortFramesStage, VerifyStage, frame_rescale


class RecordingNotifier(JobNotifier):
    def __init__(self, job_id):
        super().__init__(job_id)
        self.events = []

    async def _deliver(self, text):
        self.events.append(text)


class FakeMedia:
    """Records every media call and writes placeholder outputs."""

    def __init__(self, *, frames=3, sample_rate=48000, dimensions=(64, 48)):
        self.frames = frames
        self.sample_rate = sample_rate
        self.dimensions = dimensions
        self.calls = []
        self.delivered = []

    async def download(self, context, destination):
        destination.write_bytes(b"source")
        self.calls.append(("download", destination.name))

    async def deliver(self, context, output_path):
        self.delivered.append((output_path.name, output_path.read_bytes()))

    async def extract_frames(self, input_path, output_dir, *, frame_rate):
        self.calls.append(("extract_frames", frame_rate))
        for index in range(1, self.frames + 1):
            (output_dir / f"{index}.jpg").write_bytes(b"frame")

    async def get_audio_sample_rate(self, path):
        self.calls.append(("sample_rate", path.name))
        return self.sample_rate

    async def get_image_dimensions(self, path):
        self.calls.append(("dimensions", path.name))
        return self.dimensions

    async def distort_image(self, input_path, output_path, *, width, height, rescale):
        self.calls.append(("distort_image", input_path.name, width, height, rescale))
        output_path.write_bytes(b"distorted")

    async def distort_audio(self, input_path, output_path, *, sample_rate, vibrato, pitch, codec):
        self.calls.append(("distort_audio", sample_rate, vibrato, pitch, codec))
        output_path.write_bytes(b"distorted audio")

    async def combine_frames(
        self, input_path, distorted_dir, output_path, *, sample_rate, vibrato, pitch, audio, frame_rate
    ):
        self.calls.append(("combine_frames", sorted(p.name for p in distorted_dir.iterdir()), sample_rate, audio))
        output_path.write_bytes(b"video")

    def services(self):
        return build_services(
            download=self.download,
            deliver=self.deliver,
            extract_frames=self.extract_frames,
            get_audio_sample_rate=self.get_audio_sample_rate,
            get_image_dimensions=self.get_image_dimensions,
            distort_image=self.distort_image,
            distort_audio=self.distort_audio,
            combine_frames=self.combine_frames,
        )


def _run(kind, media, tmp_path):
    job_id = new_job_id()
    job = Job(
        id=job_id,
        kind=kind,
        stages=stages_for(kind),
        notifier=RecordingNotifier(job_id),
        services=media.services(),
    )
    result = asyncio.run(run_pipeline(job, workspace_root=tmp_path))
    return job, result


def test_voice_plan(tmp_path):
    media = FakeMedia()
    job, result = _run("voice", media, tmp_path)

    assert result.succeeded
    assert ("distort_audio", 48000, 0.7, 1.25, "libopus") in media.calls
    assert media.delivered == [("output.ogg", b"distorted audio")]
    assert job.notifier.events == [
        "Downloading...",
        "Verifying...",
        "Distorting...",
        "Sending...",
        DONE_MESSAGE,
    ]
    assert not (tmp_path / job.id).exists()


def test_audio_plan_uses_mp3_encoder(tmp_path):
    media = FakeMedia(sample_rate=44100)
    _, result = _run("audio", media, tmp_path)

    assert result.succeeded
    assert ("distort_audio", 44100, 0.7, 1.25, "libmp3lame") in media.calls
    assert media.delivered[0][0] == "output.mp3"


@pytest.mark.parametrize("kind, extension", [("sticker", "webp"), ("photo", "jpeg")])
def test_image_plans(kind, extension, tmp_path):
    media = FakeMedia(dimensions=(512, 512))
    _, result = _run(kind, media, tmp_path)

    assert result.succeeded
    assert ("dimensions", f"input.{extension}") in media.calls
    assert ("distort_image", f"input.{extension}", 512, 512, 50) in media.calls
    assert media.delivered == [(f"output.{extension}", b"distorted")]


def test_video_plan_ramps_rescale_and_reports_progress(tmp_path):
    media = FakeMedia(frames=3)
    job, result = _run("video", media, tmp_path)

    assert result.succeeded
    rescales = [call[4] for call in media.calls if call[0] == "distort_image"]
    assert rescales == [90, 65, 40]
    assert ("dimensions", "1.jpg") in media.calls
    assert ("combine_frames", ["1.jpg", "2.jpg", "3.jpg"], 48000, True) in media.calls
    assert media.delivered == [("output.mp4", b"video")]
    # throttled: only the first percentage update fits in the interval
    assert [e for e in job.notifier.events if e.startswith("Distorting frames (")] == [
        "Distorting frames (0%)"
    ]
    assert "Creating a video..." in job.notifier.events


def test_animation_plan_skips_audio(tmp_path):
    media = FakeMedia(frames=2)
    job, result = _run("animation", media, tmp_path)

    assert result.succeeded
    assert not any(call[0] == "sample_rate" for call in media.calls)
    assert ("combine_frames", ["1.jpg", "2.jpg"], None, False) in media.calls
    assert "Creating an animation..." in job.notifier.events


def test_video_note_plan_description(tmp_path):
    media = FakeMedia(frames=1)
    job, result = _run("video_note", media, tmp_path)

    assert result.succeeded
    rescales = [call[4] for call in media.calls if call[0] == "distort_image"]
    assert rescales == [90]
    assert "Creating a video note..." in job.notifier.events


def test_no_extracted_frames_fails_the_job(tmp_path):
    media = FakeMedia(frames=0)
    job, result = _run("video", media, tmp_path)

    assert not result.succeeded
    assert result.failed_stage == "extract_frames"
    assert media.delivered == []
    assert job.notifier.events[-1] == FAILURE_MESSAGE


def test_unbound_deliver_fails_at_deliver_stage(tmp_path):
    media = FakeMedia()
    job_id = new_job_id()
    job = Job(
        id=job_id,
        kind="voice",
        stages=stages_for("voice"),
        notifier=RecordingNotifier(job_id),
        services=build_services(
            download=media.download,
            get_audio_sample_rate=media.get_audio_sample_rate,
            distort_audio=media.distort_audio,
        ),
    )

    result = asyncio.run(run_pipeline(job, workspace_root=tmp_path))

    assert result.failed_stage == "deliver"
    assert isinstance(result.error, NotImplementedError)


def test_frame_rescale_bounds():
    assert frame_rescale(0, 10) == 90
    assert frame_rescale(9, 10) == 40
    assert frame_rescale(0, 1) == 90
    assert frame_rescale(1, 3, minimum=10, span=20) == 20


def test_progress_updates_follow_interval(tmp_path):
    media = FakeMedia(frames=4)
    job_id = new_job_id()
    job = Job(
        id=job_id,
        kind="animation",
        stages=[
            *stages_for("animation")[:3],
            DistortFramesStage(progress_interval=0),
        ],
        notifier=RecordingNotifier(job_id),
        services=media.services(),
    )

    asyncio.run(run_pipeline(job, workspace_root=tmp_path))

    progress = [e for e in job.notifier.events if e.startswith("Distorting frames (")]
    assert progress == [
        "Distorting frames (0%)",
        "Distorting frames (25%)",
        "Distorting frames (50%)",
        "Distorting frames (75%)",
    ]


def test_verify_stage_rejects_unknown_source():
    with pytest.raises(ValueError):
        VerifyStage(dimensions_from="thumbnail")


def test_stage_plans_are_fresh_lists():
    assert set(STAGE_PLANS) == {
        "voice", "audio", "sticker", "photo", "video", "video_note", "animation",
    }
    assert stages_for("video") is not stages_for("video")
    assert [stage.name for stage in stages_for("photo")] == [
        "download", "verify", "distort_image", "deliver",
    ]
    with pytest.raises(KeyError):
        stages_for("document")
