import base64

import pytest

from avatar_studio.gemini import GenerationResult
from avatar_studio.session import AvatarSession, DownloadNotAllowed, SessionState, Upload

PHOTO = Upload(b"photo-bytes", "image/jpeg")
STYLED = GenerationResult("image/png", base64.b64encode(b"styled").decode("utf-8"))


def test_starts_idle_without_download():
    session = AvatarSession()
    assert session.state is SessionState.IDLE
    assert not session.can_download
    with pytest.raises(DownloadNotAllowed):
        session.download_source()


def test_upload_then_resolve():
    session = AvatarSession()
    seq = session.begin_upload(PHOTO)
    assert session.state is SessionState.LOADING
    assert not session.can_download

    assert session.resolve(seq, STYLED)
    assert session.state is SessionState.READY
    assert session.download_source() == Upload(b"styled", "image/png")


def test_failure_clears_result_and_falls_back_to_upload():
    session = AvatarSession()
    session.resolve(session.begin_upload(PHOTO), STYLED)

    seq = session.begin_upload(Upload(b"second", "image/png"))
    assert session.result is None
    assert session.fail(seq, "No image returned from Gemini")

    assert session.state is SessionState.FAILED
    assert session.error == "No image returned from Gemini"
    assert session.download_source() == Upload(b"second", "image/png")


def test_new_upload_discards_previous_result():
    session = AvatarSession()
    session.resolve(session.begin_upload(PHOTO), STYLED)
    session.begin_upload(PHOTO)
    assert session.state is SessionState.LOADING
    assert session.result is None


def test_out_of_order_responses_last_request_wins():
    session = AvatarSession()
    first = session.begin_upload(PHOTO)
    second = session.begin_upload(Upload(b"newer", "image/jpeg"))
    newer = GenerationResult("image/png", "bmV3ZXI=")

    assert session.resolve(second, newer)
    # the first request completes late and must not overwrite the newer result
    assert not session.resolve(first, STYLED)
    assert not session.fail(first, "timeout")
    assert session.result == newer
    assert session.state is SessionState.READY


def test_stale_failure_ignored_while_loading():
    session = AvatarSession()
    first = session.begin_upload(PHOTO)
    second = session.begin_upload(PHOTO)
    assert not session.fail(first, "boom")
    assert session.state is SessionState.LOADING
    assert session.latest_seq == second


def test_duplicate_resolution_ignored():
    session = AvatarSession()
    seq = session.begin_upload(PHOTO)
    assert session.resolve(seq, STYLED)
    assert not session.fail(seq, "late error")
    assert session.state is SessionState.READY
