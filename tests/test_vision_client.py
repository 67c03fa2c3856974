import pytest
import requests
from requests.adapters import HTTPAdapter

from classifier import ImageClassifier
from conftest import FakeResponse, FakeSession
from vision_client import VisionAPIError, VisionClient, build_request_body, strip_data_url

API_URL = 'https://vision.example.test/v1/images:annotate'


def make_client(response):
    session = FakeSession(response)
    return VisionClient(api_key='secret', api_url=API_URL, session=session), session


def test_strip_data_url():
    assert strip_data_url('data:image/png;base64,AAAA') == 'AAAA'
    assert strip_data_url('data:image/jpeg;base64,QkJC') == 'QkJC'
    assert strip_data_url('AAAA') == 'AAAA'


def test_request_body_asks_for_labels_and_faces():
    body = build_request_body('data:image/png;base64,AAAA')
    request = body['requests'][0]
    assert request['image'] == {'content': 'AAAA'}
    assert request['features'] == [
        {'type': 'LABEL_DETECTION', 'maxResults': 20},
        {'type': 'FACE_DETECTION', 'maxResults': 10},
    ]


def test_annotate_parses_labels_and_faces():
    payload = {
        'responses': [{
            'labelAnnotations': [
                {'description': 'Dog', 'score': 0.97, 'topicality': 0.97},
                {'description': 'Snout', 'score': 0.8, 'topicality': 0.7},
            ],
            'faceAnnotations': [
                {'detectionConfidence': 0.91, 'landmarkingConfidence': 0.5, 'joyLikelihood': 'VERY_LIKELY'},
            ],
        }]
    }
    client, session = make_client(FakeResponse(200, payload))

    result = client.annotate('data:image/png;base64,AAAA')

    assert [label.description for label in result.labels] == ['Dog', 'Snout']
    assert result.labels[0].score == pytest.approx(0.97)
    assert result.faces[0].detection_confidence == pytest.approx(0.91)
    assert result.faces[0].joy_likelihood == 'VERY_LIKELY'

    url, kwargs = session.calls[0]
    assert url == API_URL
    assert kwargs['params'] == {'key': 'secret'}
    assert kwargs['json']['requests'][0]['image']['content'] == 'AAAA'


def test_annotate_handles_missing_annotations():
    client, _ = make_client(FakeResponse(200, {'responses': [{}]}))
    result = client.annotate('AAAA')
    assert result.labels == []
    assert result.faces == []


def test_annotate_raises_on_http_error():
    client, _ = make_client(FakeResponse(403, {'error': {'message': 'denied'}}))
    with pytest.raises(VisionAPIError, match='Vision API request failed: 403'):
        client.annotate('AAAA')


def test_annotate_raises_on_response_error():
    payload = {'responses': [{'error': {'code': 3, 'message': 'Bad image data.', 'status': 'INVALID_ARGUMENT'}}]}
    client, _ = make_client(FakeResponse(200, payload))
    with pytest.raises(VisionAPIError, match='Vision API error: Bad image data.'):
        client.annotate('AAAA')


def test_annotate_raises_on_transport_error():
    client, _ = make_client(requests.ConnectionError('connection refused'))
    with pytest.raises(VisionAPIError, match='connection refused'):
        client.annotate('AAAA')


def test_annotate_raises_on_unexpected_payload():
    client, _ = make_client(FakeResponse(200, {'unexpected': True}))
    with pytest.raises(VisionAPIError):
        client.annotate('AAAA')


@pytest.mark.parametrize('payload', [
    {'responses': [None]},
    {'responses': ['oops']},
    {'responses': [{'error': 'quota exceeded'}]},
    {'responses': [{'labelAnnotations': [{'description': 'Dog', 'score': 'high'}]}]},
    {'responses': [{'labelAnnotations': ['Dog']}]},
    {'responses': [{'faceAnnotations': [{'detectionConfidence': None}]}]},
])
def test_annotate_raises_on_malformed_annotation(payload):
    client, _ = make_client(FakeResponse(200, payload))
    with pytest.raises(VisionAPIError):
        client.annotate('AAAA')


def test_malformed_annotation_falls_back_to_mock(settings):
    client, _ = make_client(FakeResponse(200, {'responses': [None]}))
    result = ImageClassifier(settings, vision_client=client).classify('AAAA')
    assert result.source == 'mock'
    assert result.fallback_reason == 'vision_error'


def test_default_session_retries_transient_errors():
    client = VisionClient(api_key='secret', api_url=API_URL, retries=3)
    for prefix in ('https://', 'http://'):
        adapter = client.session.get_adapter(prefix + 'vision.example.test')
        assert isinstance(adapter, HTTPAdapter)
        retry = adapter.max_retries
        assert retry.total == 3
        assert retry.backoff_factor > 0
        assert {429, 503} <= set(retry.status_forcelist)
        assert 'POST' in retry.allowed_methods
