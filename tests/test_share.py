import io

import pytest
import requests
from PIL import Image

from captions import CaptionError, REDDIT_CAPTIONS
from compositing import encode_data_url
from conftest import FakeResponse, FakeSession, make_image_bytes
from share import ShareClient, ShareError, share_verdict

POST_URL = 'https://www.reddit.com/r/PetItOrCookIt/comments/abc123/'


@pytest.fixture
def image_data_url():
    return encode_data_url(make_image_bytes(size=(200, 150)), 'image/png')


def make_client(settings, response):
    session = FakeSession(response)
    return ShareClient(settings, session=session), session


def test_post_verdict_sends_multipart_form(settings, image_data_url):
    client, session = make_client(settings, FakeResponse(200, {'url': POST_URL}))

    url = client.post_verdict('COOK', 'Medium-rare or well done?', image_data_url)

    assert url == POST_URL
    endpoint, kwargs = session.calls[0]
    assert endpoint == settings.share_endpoint_url
    assert kwargs['data'] == {'caption': 'Medium-rare or well done?'}
    filename, blob, mime = kwargs['files']['image']
    assert filename == 'verdict-COOK.jpg'
    assert mime == 'image/jpeg'
    assert Image.open(io.BytesIO(blob)).size == (200, 150)


def test_post_verdict_raises_on_http_error(settings, image_data_url):
    client, _ = make_client(settings, FakeResponse(500, text='boom'))
    with pytest.raises(ShareError, match='HTTP 500: boom'):
        client.post_verdict('PET', 'caption', image_data_url)


def test_post_verdict_raises_without_url(settings, image_data_url):
    client, _ = make_client(settings, FakeResponse(200, {'ok': True}))
    with pytest.raises(ShareError):
        client.post_verdict('PET', 'caption', image_data_url)


def test_post_verdict_raises_on_transport_error(settings, image_data_url):
    client, _ = make_client(settings, requests.Timeout('timed out'))
    with pytest.raises(ShareError, match='timed out'):
        client.post_verdict('PET', 'caption', image_data_url)


def test_post_verdict_rejects_unknown_verdict(settings, image_data_url):
    client, session = make_client(settings, FakeResponse(200, {'url': POST_URL}))
    with pytest.raises(ValueError):
        client.post_verdict('GRILL', 'caption', image_data_url)
    assert session.calls == []


def test_share_verdict_uses_custom_caption(settings, image_data_url):
    client, session = make_client(settings, FakeResponse(200, {'url': POST_URL}))
    share_verdict(client, 'PET', REDDIT_CAPTIONS[1], '  so fluffy  ', image_data_url)
    assert session.calls[0][1]['data'] == {'caption': 'so fluffy'}


def test_share_verdict_checks_caption_before_posting(settings, image_data_url):
    client, session = make_client(settings, FakeResponse(200, {'url': POST_URL}))
    with pytest.raises(CaptionError):
        share_verdict(client, 'PET', None, 'x' * 301, image_data_url)
    assert session.calls == []
