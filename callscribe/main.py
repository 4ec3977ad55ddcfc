"""
HTTP entrypoint.

``POST /transcribe`` with a JSON body ``{"url": ..., "name": ...}``
transcribes the dual-channel recording at ``url`` and responds with the
chronologically sorted utterances.  ``name`` is optional.

Options come from the environment (see :mod:`callscribe.config`); ``PORT``
selects the listening port when run directly.
"""

import json
import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

from .config import TranscribeOptions
from .errors import TranscriptionError
from .tasks import Client
from .transcript_formatter import format_transcript

logging.basicConfig(level=logging.INFO, format="%(message)s")

app = Flask(__name__)

_client: Optional[Client] = None


def get_client() -> Client:
    global _client
    if _client is None:
        _client = Client(TranscribeOptions.from_env())
    return _client


def _warning_dict(error: TranscriptionError) -> dict:
    return {"stage": error.stage, "error": str(error)}


@app.route("/transcribe", methods=["POST"])
def transcribe():
    data = request.get_json(silent=True) or {}
    url = data.get("url")
    name = data.get("name")
    logging.info(json.dumps({"event": "request", "url": url, "name": name}))
    if not url:
        return jsonify({"error": "Missing 'url' in request"}), 400

    try:
        transcript = get_client().transcribe_url(url, name)
    except TranscriptionError as e:
        logging.error(json.dumps({"event": "transcription_failed", "stage": e.stage, "error": str(e)}))
        return (
            jsonify(
                {
                    "error": str(e),
                    "stage": e.stage,
                    "channel": e.channel.label if e.channel else None,
                    "warnings": [_warning_dict(w) for w in e.warnings],
                }
            ),
            502,
        )
    except Exception as e:
        logging.exception("Error in /transcribe")
        return jsonify({"error": f"Server error: {e}"}), 500

    for warning in transcript.warnings:
        logging.warning(json.dumps({"event": "cleanup_warning", **_warning_dict(warning)}))
    utterances = transcript.sorted()
    logging.info(json.dumps({"event": "transcribed", "url": url, "utterances": len(utterances)}))
    return jsonify(
        {
            "utterances": [u.to_dict() for u in utterances],
            "text": format_transcript(utterances),
            "warnings": [_warning_dict(w) for w in transcript.warnings],
            "original_uri": transcript.original_uri,
        }
    )


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
