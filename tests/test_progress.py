import asyncio
from types import SimpleNamespace

from telegram.error import BadRequest

from distortion_modules.jobs import JobNotifier, ProgressThrottle, TelegramStatusNotifier


class RecordingNotifier(JobNotifier):
    def __init__(self):
        super().__init__("job")
        self.events = []

    async def _deliver(self, text):
        self.events.append(text)


class FakeBot:
    def __init__(self, *, fail=False):
        self.fail = fail
        self.edits = []
        self.deleted = []

    async def edit_message_text(self, **kwargs):
        if self.fail:
            raise BadRequest("Message to edit not found")
        self.edits.append(kwargs)

    async def delete_message(self, **kwargs):
        if self.fail:
            raise BadRequest("Message to delete not found")
        self.deleted.append(kwargs)


def test_throttle_emits_first_update_then_waits_for_interval():
    notifier = RecordingNotifier()
    clock = SimpleNamespace(now=100.0)
    throttle = ProgressThrottle(notifier, interval=5, clock=lambda: clock.now)

    async def scenario():
        emitted = []
        for now, text in [(100.0, "0%"), (101.0, "10%"), (104.9, "20%"), (105.0, "30%"), (107.0, "40%"), (110.1, "50%")]:
            clock.now = now
            emitted.append(await throttle.maybe_notify(text))
        await notifier.close()
        return emitted

    emitted = asyncio.run(scenario())

    assert emitted == [True, False, False, True, False, True]
    assert notifier.events == ["0%", "30%", "50%"]


def test_notifier_skips_repeated_text():
    notifier = RecordingNotifier()

    async def scenario():
        await notifier.notify("Distorting...")
        await notifier.notify("Distorting...")
        await notifier.notify("Sending...")
        await notifier.close()

    asyncio.run(scenario())

    assert notifier.events == ["Distorting...", "Sending..."]
    assert notifier.last_text == "Sending..."


def test_telegram_notifier_edits_and_deletes_status_message():
    bot = FakeBot()
    notifier = TelegramStatusNotifier("job", bot, chat_id=10, message_id=20)

    async def scenario():
        await notifier.notify("Downloading...")
        await notifier.close()

    asyncio.run(scenario())

    assert bot.edits == [{"text": "Downloading...", "chat_id": 10, "message_id": 20}]
    assert bot.deleted == [{"chat_id": 10, "message_id": 20}]


def test_telegram_notifier_swallows_api_errors():
    bot = FakeBot(fail=True)
    notifier = TelegramStatusNotifier("job", bot, chat_id=10, message_id=20)

    async def scenario():
        await notifier.notify("Downloading...")
        await notifier.close()

    asyncio.run(scenario())

    assert bot.edits == []
    assert bot.deleted == []


class StuckNotifier(JobNotifier):
    def __init__(self, *, close_timeout=0.05):
        super().__init__("job", close_timeout=close_timeout)
        self.attempts = []
        self.disposed = False

    async def _deliver(self, text):
        self.attempts.append(text)
        await asyncio.Event().wait()

    async def _dispose(self):
        self.disposed = True


class SlowNotifier(JobNotifier):
    def __init__(self):
        super().__init__("job")
        self.events = []

    async def _deliver(self, text):
        await asyncio.sleep(0.01 if text == "Queued..." else 0)
        self.events.append(text)


def test_notify_returns_before_delivery_finishes():
    notifier = StuckNotifier()

    async def scenario():
        await asyncio.wait_for(notifier.notify("Downloading..."), timeout=0.5)
        await asyncio.wait_for(notifier.notify("Verifying..."), timeout=0.5)
        await asyncio.sleep(0)
        attempts = list(notifier.attempts)
        delivered = await notifier.flush()
        await notifier.close()
        return attempts, delivered

    attempts, delivered = asyncio.run(scenario())

    assert attempts == ["Downloading..."]
    assert delivered is False
    assert notifier.disposed


def test_slow_delivery_keeps_submission_order():
    notifier = SlowNotifier()

    async def scenario():
        await notifier.notify("Queued...")
        await notifier.notify("Downloading...")
        await notifier.notify("Done!")
        await notifier.close()

    asyncio.run(scenario())

    assert notifier.events == ["Queued...", "Downloading...", "Done!"]


def test_notify_after_flush_starts_a_new_sender():
    notifier = RecordingNotifier()

    async def scenario():
        await notifier.notify("Queued...")
        assert await notifier.flush() is True
        await notifier.notify("Downloading...")
        await notifier.close()

    asyncio.run(scenario())

    assert notifier.events == ["Queued...", "Downloading..."]
