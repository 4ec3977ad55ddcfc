from datetime import timedelta

import callscribe.main as main
from callscribe import Channel, DeleteError, RecognitionError, Transcript, Utterance


class FakeClient:
    def __init__(self, transcript=None, error=None):
        self.transcript = transcript
        self.error = error
        self.calls = []

    def transcribe_url(self, url, name=None):
        self.calls.append((url, name))
        if self.error is not None:
            raise self.error
        return self.transcript


def test_transcribe_endpoint(monkeypatch):
    transcript = Transcript(
        utterances=[
            Utterance(Channel.LEFT, timedelta(seconds=3), "bye"),
            Utterance(Channel.RIGHT, timedelta(seconds=1.2), "hi there"),
        ],
        warnings=[DeleteError("left channel file gs://calls/a.left.wav")],
    )
    fake = FakeClient(transcript)
    monkeypatch.setattr(main, "_client", fake)

    client = main.app.test_client()
    rv = client.post("/transcribe", json={"url": "https://example.com/a.wav", "name": "a"})

    assert rv.status_code == 200
    body = rv.get_json()
    assert [u["text"] for u in body["utterances"]] == ["hi there", "bye"]
    assert body["utterances"][0] == {"channel": "B", "offset": 1.2, "text": "hi there"}
    assert body["text"] == "B|0 hi there\nA bye"
    assert body["warnings"][0]["stage"] == "deleting"
    assert fake.calls == [("https://example.com/a.wav", "a")]


def test_missing_url(monkeypatch):
    monkeypatch.setattr(main, "_client", FakeClient())
    rv = main.app.test_client().post("/transcribe", json={})
    assert rv.status_code == 400


def test_transcription_failure(monkeypatch):
    error = RecognitionError("waiting on long running recognize", channel=Channel.RIGHT)
    monkeypatch.setattr(main, "_client", FakeClient(error=error))

    rv = main.app.test_client().post("/transcribe", json={"url": "https://example.com/a.wav"})

    assert rv.status_code == 502
    body = rv.get_json()
    assert body["stage"] == "recognizing"
    assert body["channel"] == "B"
    assert body["warnings"] == []


def test_unexpected_error_returns_json_500(monkeypatch):
    monkeypatch.setattr(main, "_client", None)
    monkeypatch.delenv("STORAGE_BUCKET", raising=False)

    rv = main.app.test_client().post("/transcribe", json={"url": "https://example.com/a.wav"})

    assert rv.status_code == 500
    body = rv.get_json()
    assert "storage_bucket is required" in body["error"]
