import asyncio

import pytest

from distortion_modules.media import tools
from distortion_modules.media.errors import ToolError, ToolTimeout


class FakeProcess:
    def __init__(self, *, returncode=0, stdout=b"", stderr=b"", delay=0):
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr
        self._delay = delay
        self.killed = False

    async def communicate(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._stdout, self._stderr

    def kill(self):
        self.killed = True

    async def wait(self):
        return self.returncode


def _patch_subprocess(monkeypatch, process, commands=None):
    async def _fake_exec(*command, **kwargs):
        if commands is not None:
            commands.append(list(command))
        return process

    monkeypatch.setattr(tools.asyncio, "create_subprocess_exec", _fake_exec)


def _capture_commands(monkeypatch, output=""):
    commands = []

    async def _fake_run_tool(command, *, timeout=None):
        commands.append([str(part) for part in command])
        return output

    monkeypatch.setattr(tools, "run_tool", _fake_run_tool)
    return commands


def test_build_audio_filters():
    assert tools.build_audio_filters(sample_rate=48000, vibrato=0.7, pitch=1.25) == [
        "vibrato=f=10:d=0.7",
        "asetrate=48000*1.25,aresample=48000,atempo=1/1.25",
    ]
    assert tools.build_audio_filters(sample_rate=48000, vibrato=0, pitch=1) == []


def test_list_frames_uses_numeric_order(tmp_path):
    for name in ["10.jpg", "2.jpg", "1.jpg", "cover.jpg", "3.png"]:
        (tmp_path / name).write_bytes(b"")

    assert [path.name for path in tools.list_frames(tmp_path)] == ["1.jpg", "2.jpg", "10.jpg"]


def test_run_tool_returns_stdout(monkeypatch):
    commands = []
    _patch_subprocess(monkeypatch, FakeProcess(stdout=b"ok\n"), commands)

    output = asyncio.run(tools.run_tool(["ffprobe", 1, "file"]))

    assert output == "ok\n"
    assert commands == [["ffprobe", "1", "file"]]


def test_run_tool_raises_on_nonzero_exit(monkeypatch):
    _patch_subprocess(monkeypatch, FakeProcess(returncode=1, stderr=b"first\nInvalid data found\n"))

    with pytest.raises(ToolError) as excinfo:
        asyncio.run(tools.run_tool(["ffmpeg", "-i", "broken.mp4"]))

    assert excinfo.value.returncode == 1
    assert "Invalid data found" in str(excinfo.value)


def test_run_tool_kills_process_on_timeout(monkeypatch):
    process = FakeProcess(delay=10)
    _patch_subprocess(monkeypatch, process)

    with pytest.raises(ToolTimeout):
        asyncio.run(tools.run_tool(["magick", "in.jpg", "out.jpg"], timeout=0.01))

    assert process.killed


def test_run_tool_reports_missing_program(monkeypatch):
    async def _missing(*command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr(tools.asyncio, "create_subprocess_exec", _missing)

    with pytest.raises(ToolError) as excinfo:
        asyncio.run(tools.run_tool(["ffmpeg", "-version"]))

    assert excinfo.value.returncode is None


def test_sample_rate_is_parsed(monkeypatch):
    commands = _capture_commands(monkeypatch, output="44100\n")

    assert asyncio.run(tools.get_audio_sample_rate("input.mp3")) == 44100
    assert commands[0][0] == "ffprobe"
    assert commands[0][-1] == "input.mp3"


def test_missing_audio_stream_is_an_error(monkeypatch):
    _capture_commands(monkeypatch, output="")

    with pytest.raises(ToolError):
        asyncio.run(tools.get_audio_sample_rate("silent.mp4"))


def test_image_dimensions_are_parsed(monkeypatch):
    _capture_commands(monkeypatch, output="640 480")

    assert asyncio.run(tools.get_image_dimensions("1.jpg")) == (640, 480)


def test_distort_image_command(monkeypatch, tmp_path):
    commands = _capture_commands(monkeypatch)

    asyncio.run(
        tools.distort_image(tmp_path / "in.jpg", tmp_path / "out" / "in.jpg", width=320, height=240, rescale=65.0)
    )

    assert commands == [[
        "magick", str(tmp_path / "in.jpg"),
        "-liquid-rescale", "65%",
        "-resize", "320x240",
        str(tmp_path / "out" / "in.jpg"),
    ]]
    assert (tmp_path / "out").is_dir()


def test_distort_audio_command(monkeypatch, tmp_path):
    commands = _capture_commands(monkeypatch)

    asyncio.run(
        tools.distort_audio(
            tmp_path / "input.mp3",
            tmp_path / "output.mp3",
            sample_rate=44100,
            vibrato=0.7,
            pitch=1.25,
            codec="libmp3lame",
        )
    )

    command = commands[0]
    assert command[command.index("-filter:a") + 1] == (
        "vibrato=f=10:d=0.7,asetrate=44100*1.25,aresample=44100,atempo=1/1.25"
    )
    assert command[command.index("-c:a") + 1] == "libmp3lame"
    assert command[-1] == str(tmp_path / "output.mp3")


def test_combine_frames_with_audio(monkeypatch, tmp_path):
    commands = _capture_commands(monkeypatch)

    asyncio.run(
        tools.combine_frames(
            tmp_path / "input.mp4",
            tmp_path / "distorted",
            tmp_path / "output.mp4",
            sample_rate=48000,
            vibrato=0.7,
            pitch=1.25,
        )
    )

    command = commands[0]
    assert str(tmp_path / "distorted" / "%d.jpg") in command
    assert ["-map", "0:v:0", "-map", "1:a:0"] == command[command.index("-map"):command.index("-map") + 4]
    assert "-filter:a" in command
    assert command[command.index("-c:v") + 1] == "libx264"
    assert command[command.index("-pix_fmt") + 1] == "yuv420p"


def test_combine_frames_without_audio(monkeypatch, tmp_path):
    commands = _capture_commands(monkeypatch)

    asyncio.run(
        tools.combine_frames(tmp_path / "input.mp4", tmp_path / "distorted", tmp_path / "output.mp4", audio=False)
    )

    command = commands[0]
    assert "-an" in command
    assert "-filter:a" not in command
    assert command.count("-i") == 1


def test_combine_frames_requires_sample_rate_for_audio(monkeypatch, tmp_path):
    _capture_commands(monkeypatch)

    with pytest.raises(ValueError):
        asyncio.run(tools.combine_frames(tmp_path / "in.mp4", tmp_path / "frames", tmp_path / "out.mp4"))
