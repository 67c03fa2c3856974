"""
Image classification for Pet It or Cook It

Scores the labels returned by the vision service against fixed keyword
lists and picks one of: animal, human, selfie, other.

Label sources, in order:
    1. Google Cloud Vision (when GOOGLE_VISION_API_KEY is set)
    2. Local CLIP zero-shot labeler (when LOCAL_LABELER is on and
       transformers is installed)
    3. Random mock classification
"""

import logging
import os
import random
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from keywords import ANIMAL_KEYWORDS, HUMAN_KEYWORDS, SELFIE_INDICATORS, keyword_hit
from vision_client import Annotation, Label, VisionAPIError, VisionClient

logger = logging.getLogger(__name__)

# Keep Hugging Face downloads in a project-local cache (set before importing transformers)
HF_CACHE_DIR = Path(__file__).resolve().parent / '.cache' / 'huggingface'
os.environ.setdefault('TRANSFORMERS_CACHE', str(HF_CACHE_DIR))
os.environ.setdefault('HF_HOME', str(HF_CACHE_DIR))
os.environ.setdefault('HF_HUB_DISABLE_TELEMETRY', '1')
os.environ.setdefault('HF_HUB_DISABLE_XET', '1')

try:
    from transformers import pipeline
    _TRANSFORMERS_AVAILABLE = True
except ImportError:  # pragma: no cover
    _TRANSFORMERS_AVAILABLE = False

CATEGORIES = ('animal', 'human', 'selfie', 'other')

# Scoring thresholds
MIN_SCORE = 0.3
MIN_MARGIN = 0.15
FACE_HUMAN_BOOST = 0.3
SINGLE_FACE_SELFIE_BOOST = 0.4
SINGLE_FACE_MIN_CONFIDENCE = 0.8

# Candidate labels for the local CLIP labeler: every keyword plus some
# neutral scene labels
LOCAL_LABEL_CANDIDATES = sorted(
    set(ANIMAL_KEYWORDS) | set(HUMAN_KEYWORDS) | set(SELFIE_INDICATORS) | {
        'food', 'car', 'building', 'landscape', 'furniture', 'plant', 'text',
        'screenshot', 'toy', 'sky', 'room', 'object',
    }
)
LOCAL_TOP_K = 10

# Lazily initialized Hugging Face pipeline (downloaded on first use)
_clip_classifier = None


@dataclass
class Classification:
    category: str
    confidence: float
    labels: List[str] = field(default_factory=list)
    source: str = 'vision'
    fallback_reason: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def _other(labels, animal_score, human_score, selfie_score):
    return Classification(
        category='other',
        confidence=1.0 - max(animal_score, human_score, selfie_score),
        labels=labels,
    )


def analyze_vision_results(annotation: Annotation) -> Classification:
    labels = annotation.labels
    faces = annotation.faces

    label_descriptions = [label.description.lower() for label in labels]
    # Later duplicates win
    label_scores = {label.description.lower(): label.score for label in labels}

    animal_score = 0.0
    human_score = 0.0
    selfie_score = 0.0

    # A label can count towards more than one category
    for label in label_descriptions:
        if keyword_hit(label, ANIMAL_KEYWORDS):
            animal_score += label_scores.get(label, 0.0)
        if keyword_hit(label, HUMAN_KEYWORDS):
            human_score += label_scores.get(label, 0.0)
        if keyword_hit(label, SELFIE_INDICATORS):
            selfie_score += label_scores.get(label, 0.0)

    # Faces are a strong human indicator; one clear face is likely a selfie
    if faces:
        human_score += FACE_HUMAN_BOOST
        if len(faces) == 1 and faces[0].detection_confidence > SINGLE_FACE_MIN_CONFIDENCE:
            selfie_score += SINGLE_FACE_SELFIE_BOOST

    scores = [
        ('animal', animal_score),
        ('human', human_score),
        ('selfie', selfie_score),
    ]
    scores.sort(key=lambda item: item[1], reverse=True)
    (top_category, top_score), (_, second_score) = scores[0], scores[1]

    if animal_score < MIN_SCORE and human_score < MIN_SCORE and selfie_score < MIN_SCORE:
        return _other(label_descriptions, animal_score, human_score, selfie_score)

    # Too close to call
    if top_score - second_score < MIN_MARGIN:
        return _other(label_descriptions, animal_score, human_score, selfie_score)

    if top_category == 'animal' and top_score > MIN_SCORE:
        return Classification('animal', animal_score, label_descriptions)

    if top_category == 'human' and top_score > MIN_SCORE:
        if selfie_score > MIN_SCORE:
            return Classification('selfie', min(selfie_score + human_score, 1.0), label_descriptions)
        return Classification('human', human_score, label_descriptions)

    if top_category == 'selfie' and top_score > MIN_SCORE:
        return Classification('selfie', selfie_score, label_descriptions)

    return _other(label_descriptions, animal_score, human_score, selfie_score)


def mock_classify(rng=None, reason=None):
    """Random classification used when no label source is usable."""
    rng = rng or random
    return Classification(
        category=rng.choice(CATEGORIES),
        confidence=0.7 + rng.random() * 0.3,
        labels=['mock', 'classification'],
        source='mock',
        fallback_reason=reason,
    )


def _get_clip_classifier(model):
    global _clip_classifier
    if _clip_classifier is None:
        HF_CACHE_DIR.mkdir(parents=True, exist_ok=True)
        _clip_classifier = pipeline(task='zero-shot-image-classification', model=model)
        logger.info('Loaded CLIP zero-shot image classifier: %s', model)
    return _clip_classifier


def local_annotate(pil_image, model):
    """Label an image with CLIP zero-shot classification.

    Returns an Annotation without faces; the CLIP scores are used in place
    of Vision label scores.
    """
    classifier = _get_clip_classifier(model)
    predictions = classifier(
        pil_image,
        candidate_labels=LOCAL_LABEL_CANDIDATES,
        hypothesis_template='a photo of {}',
    )
    return Annotation(labels=[
        Label(description=p.get('label', ''), score=float(p.get('score', 0.0)))
        for p in predictions[:LOCAL_TOP_K]
    ])


class ImageClassifier:
    """Runs the label sources in order and scores the first that answers."""

    def __init__(self, settings, vision_client=None, rng=None):
        self.settings = settings
        self.rng = rng or random.Random()
        self.vision_client = vision_client
        if self.vision_client is None and settings.vision_api_key:
            self.vision_client = VisionClient(
                api_key=settings.vision_api_key,
                api_url=settings.vision_api_url,
                timeout=settings.vision_timeout,
                retries=settings.vision_retries,
            )

    def classify(self, image_base64, pil_image=None):
        reason = None
        if self.vision_client is None:
            logger.warning('Google Vision API key not found, using fallback classification')
            reason = 'no_api_key'
        else:
            try:
                annotation = self.vision_client.annotate(image_base64)
                return analyze_vision_results(annotation)
            except VisionAPIError as e:
                logger.error('Vision API error: %s', e)
                reason = 'vision_error'

        if self.settings.local_labeler and pil_image is not None:
            if not _TRANSFORMERS_AVAILABLE:
                logger.warning('LOCAL_LABELER is on but transformers is not installed')
            else:
                try:
                    annotation = local_annotate(pil_image, self.settings.local_labeler_model)
                except (OSError, RuntimeError, ValueError) as e:
                    logger.warning('Local CLIP labeler failed: %s', e)
                else:
                    result = analyze_vision_results(annotation)
                    result.source = 'local-clip'
                    result.fallback_reason = reason
                    return result

        return mock_classify(self.rng, reason=reason)
