import httpx
import pytest

from kaeva.config import InferenceConfig
from kaeva.models import MediaType
from kaeva.services.media_analyzer import (
    FetchedMedia,
    analyze_media,
    deepfake_indicators,
    detect_platform,
    infer_filename,
    media_type_for,
)
from tests.helpers import INFERENCE_URL, FakeNetwork

MEDIA_URL = "https://media.test/uploads/photo.jpg"


@pytest.fixture
def config():
    return InferenceConfig(base_url=INFERENCE_URL + "/")


@pytest.mark.parametrize(
    "hint,expected",
    [
        ("Forwarded from WhatsApp", "whatsapp"),
        ("instagram story", "instagram"),
        ("Telegram", "telegram"),
        ("screenshot of a tweet", "screenshot"),
        ("somewhere else", "clean"),
        (None, "clean"),
        ("", "clean"),
    ],
)
def test_detect_platform(hint, expected):
    assert detect_platform(hint) == expected


@pytest.mark.parametrize(
    "content_type,expected",
    [
        ("video/mp4", MediaType.VIDEO),
        ("audio/mpeg", MediaType.AUDIO),
        ("image/png", MediaType.IMAGE),
        ("application/octet-stream", MediaType.IMAGE),
        (None, MediaType.IMAGE),
    ],
)
def test_media_type_for(content_type, expected):
    assert media_type_for(content_type) == expected


def test_infer_filename():
    assert infer_filename(MEDIA_URL, MediaType.IMAGE) == "photo.jpg"
    assert infer_filename("https://media.test/", MediaType.VIDEO) == "file.mp4"
    assert infer_filename("https://media.test", MediaType.AUDIO) == "file.wav"


def test_deepfake_indicators():
    result = {
        "verdict": "fake",
        "ensemble_scores": {"vit": 0.91, "effnet": 0.4},
        "flags": ["face warping"],
    }
    assert deepfake_indicators(result, 0.8) == [
        "Ensemble: 80.0% fake confidence",
        "vit: 91.0% fake",
        "face warping",
    ]
    assert deepfake_indicators({"verdict": "real"}, 0.1) == []


@pytest.mark.asyncio
async def test_image_analysis(config):
    network = FakeNetwork()
    network.add("GET", MEDIA_URL, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"})
    network.add(
        "POST",
        f"{INFERENCE_URL}/image",
        json_body={
            "verdict": "fake",
            "scores": {"fake": 0.8, "real": 0.2},
            "ensemble_scores": {"vit": 0.9},
            "model": "kaeva-ensemble",
            "version": "3",
        },
    )

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config, platform="WhatsApp forward")

    assert analysis.type == MediaType.IMAGE
    assert analysis.authenticity_score == pytest.approx(0.2)
    assert analysis.verdict == "fake"
    assert analysis.platform == "whatsapp"
    assert analysis.filename == "photo.jpg"
    assert analysis.deepfake_indicators == ["Ensemble: 80.0% fake confidence", "vit: 90.0% fake"]

    (upload,) = network.sent("POST", f"{INFERENCE_URL}/image")
    assert upload.url.params["platform"] == "whatsapp"
    assert b'name="file"; filename="photo.jpg"' in upload.content

    wire = analysis.to_wire()
    assert wire["authenticityScore"] == pytest.approx(0.2)
    assert wire["ensemble_scores"] == {"vit": 0.9}


@pytest.mark.asyncio
async def test_missing_fake_score_defaults_to_even_odds(config):
    network = FakeNetwork()
    network.add("GET", MEDIA_URL, content=b"img", headers={"content-type": "image/png"})
    network.add("POST", f"{INFERENCE_URL}/image", json_body={"verdict": "uncertain"})

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config)

    assert analysis.authenticity_score == 0.5
    assert analysis.platform == "clean"


@pytest.mark.asyncio
async def test_audio_is_sent_without_platform(config):
    url = "https://media.test/voice"
    network = FakeNetwork()
    network.add("GET", url, content=b"RIFF", headers={"content-type": "audio/wav"})
    network.add("POST", f"{INFERENCE_URL}/audio", json_body={"scores": {"fake": 0.3}})

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, url, config, platform="telegram")

    assert analysis.type == MediaType.AUDIO
    assert analysis.authenticity_score == pytest.approx(0.7)
    assert analysis.filename == "voice"
    (upload,) = network.sent("POST", f"{INFERENCE_URL}/audio")
    assert "platform" not in upload.url.params


@pytest.mark.asyncio
async def test_inference_error_status_degrades(config):
    network = FakeNetwork()
    network.add("GET", MEDIA_URL, content=b"mp4", headers={"content-type": "video/mp4"})
    network.add("POST", f"{INFERENCE_URL}/video", status=500, json_body={"detail": "boom"})

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config)

    assert analysis.type == MediaType.VIDEO
    assert analysis.authenticity_score is None
    assert analysis.notes == "ML analysis failed (500)"


@pytest.mark.asyncio
async def test_unreachable_media_degrades(config):
    network = FakeNetwork()
    network.fail("GET", MEDIA_URL)

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config)

    assert analysis.type == MediaType.UNKNOWN
    assert analysis.authenticity_score is None
    assert analysis.notes.startswith("Media analysis error:")
    assert network.sent("POST", f"{INFERENCE_URL}/image") == []


@pytest.mark.asyncio
async def test_media_download_error_status_degrades(config):
    network = FakeNetwork()
    network.add("GET", MEDIA_URL, status=404)

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config)

    assert analysis.authenticity_score is None
    assert "Media analysis error" in analysis.notes


@pytest.mark.asyncio
async def test_no_url_returns_none(config):
    async with httpx.AsyncClient(transport=FakeNetwork().transport) as client:
        assert await analyze_media(client, None, config) is None
        assert await analyze_media(client, "", config) is None


@pytest.mark.asyncio
async def test_non_string_pass_through_fields_keep_the_score(config):
    network = FakeNetwork()
    network.add("GET", MEDIA_URL, content=b"jpeg", headers={"content-type": "image/jpeg"})
    network.add(
        "POST",
        f"{INFERENCE_URL}/image",
        json_body={"verdict": 1, "scores": {"fake": 0.1}, "model": ["a", "b"], "version": 10},
    )

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config)

    assert analysis.authenticity_score == pytest.approx(0.9)
    assert analysis.notes is None
    wire = analysis.to_wire()
    assert (wire["verdict"], wire["model"], wire["version"]) == (1, ["a", "b"], 10)


@pytest.mark.asyncio
async def test_malformed_url_degrades(config):
    network = FakeNetwork()

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, "http://[::1", config)

    assert analysis.type == MediaType.UNKNOWN
    assert analysis.authenticity_score is None
    assert analysis.notes.startswith("Media analysis error:")


@pytest.mark.asyncio
async def test_prefetched_media_is_not_downloaded_again(config):
    network = FakeNetwork()
    network.add("POST", f"{INFERENCE_URL}/video", json_body={"scores": {"fake": 0.25}})
    media = FetchedMedia(b"mp4", "video/mp4")

    async with httpx.AsyncClient(transport=network.transport) as client:
        analysis = await analyze_media(client, MEDIA_URL, config, media=media)

    assert analysis.type == MediaType.VIDEO
    assert analysis.authenticity_score == pytest.approx(0.75)
    assert network.sent("GET", MEDIA_URL) == []
