"""
Google Cloud Vision client

Sends one images:annotate request with label and face detection and
turns the response into plain Python objects for the classifier.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

LABEL_MAX_RESULTS = 20
FACE_MAX_RESULTS = 10

_DATA_URL_PREFIX = re.compile(r'^data:image/[a-z]+;base64,')


class VisionAPIError(Exception):
    """Raised when the Vision API cannot produce an annotation."""


@dataclass
class Label:
    description: str
    score: float
    topicality: float = 0.0


@dataclass
class Face:
    detection_confidence: float
    landmarking_confidence: float = 0.0
    joy_likelihood: str = 'UNKNOWN'
    sorrow_likelihood: str = 'UNKNOWN'
    anger_likelihood: str = 'UNKNOWN'
    surprise_likelihood: str = 'UNKNOWN'
    under_exposed_likelihood: str = 'UNKNOWN'
    blurred_likelihood: str = 'UNKNOWN'
    headwear_likelihood: str = 'UNKNOWN'


@dataclass
class Annotation:
    labels: List[Label] = field(default_factory=list)
    faces: List[Face] = field(default_factory=list)


def strip_data_url(image_base64):
    """Remove data URL prefix if present"""
    return _DATA_URL_PREFIX.sub('', image_base64)


def build_request_body(image_base64):
    return {
        'requests': [
            {
                'image': {'content': strip_data_url(image_base64)},
                'features': [
                    {'type': 'LABEL_DETECTION', 'maxResults': LABEL_MAX_RESULTS},
                    {'type': 'FACE_DETECTION', 'maxResults': FACE_MAX_RESULTS},
                ],
            }
        ]
    }


def parse_annotation(result):
    """Convert one entry of the `responses` array into an Annotation."""
    if not isinstance(result, dict):
        raise VisionAPIError(f'Vision API returned an unexpected response: {result!r}')
    error = result.get('error')
    if error:
        message = error.get('message', 'unknown error') if isinstance(error, dict) else error
        raise VisionAPIError(f'Vision API error: {message}')

    labels = [
        Label(
            description=str(item.get('description', '')),
            score=float(item.get('score', 0.0)),
            topicality=float(item.get('topicality', 0.0)),
        )
        for item in result.get('labelAnnotations') or []
    ]
    faces = [
        Face(
            detection_confidence=float(item.get('detectionConfidence', 0.0)),
            landmarking_confidence=float(item.get('landmarkingConfidence', 0.0)),
            joy_likelihood=item.get('joyLikelihood', 'UNKNOWN'),
            sorrow_likelihood=item.get('sorrowLikelihood', 'UNKNOWN'),
            anger_likelihood=item.get('angerLikelihood', 'UNKNOWN'),
            surprise_likelihood=item.get('surpriseLikelihood', 'UNKNOWN'),
            under_exposed_likelihood=item.get('underExposedLikelihood', 'UNKNOWN'),
            blurred_likelihood=item.get('blurredLikelihood', 'UNKNOWN'),
            headwear_likelihood=item.get('headwearLikelihood', 'UNKNOWN'),
        )
        for item in result.get('faceAnnotations') or []
    ]
    return Annotation(labels=labels, faces=faces)


class VisionClient:
    def __init__(self, api_key, api_url, timeout=15.0, retries=2, session=None):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or self._build_session(retries)

    @staticmethod
    def _build_session(retries):
        session = requests.Session()
        retry = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(['POST']),
            raise_on_status=False,
        )
        session.mount('https://', HTTPAdapter(max_retries=retry))
        session.mount('http://', HTTPAdapter(max_retries=retry))
        return session

    def annotate(self, image_base64):
        try:
            response = self.session.post(
                self.api_url,
                params={'key': self.api_key},
                json=build_request_body(image_base64),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise VisionAPIError(f'Vision API request failed: {e}') from e

        if not response.ok:
            raise VisionAPIError(f'Vision API request failed: {response.status_code}')

        try:
            data = response.json()
            result = data['responses'][0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise VisionAPIError(f'Vision API returned an unexpected payload: {e}') from e

        try:
            annotation = parse_annotation(result)
        except (AttributeError, TypeError, ValueError) as e:
            raise VisionAPIError(f'Vision API returned an unexpected payload: {e}') from e
        logger.debug('Vision API returned %d labels and %d faces',
                     len(annotation.labels), len(annotation.faces))
        return annotation
