#!/usr/bin/env python3
"""
Web app and API proxy for Pet It or Cook It

Serves the three screens (home, analyzing, result) and a small JSON API.
Calls to the Vision API and the share endpoint go through this server so
the API key never reaches the browser.

Usage:
    python3 api_proxy.py

The server will run on http://localhost:8000
"""

import base64
import logging
import math

from flask import Flask, abort, current_app, jsonify, render_template, request
from flask_cors import CORS

from captions import DEFAULT_CAPTION, MAX_CUSTOM_CAPTION, REDDIT_CAPTIONS, CaptionError
from classifier import ImageClassifier
from compositing import ImageDecodeError, decode_data_url, encode_data_url, open_image
from settings import Settings
from share import SUBREDDIT_URL, ShareClient, ShareError, share_verdict
from verdict import (
    CLASSIFYING_MESSAGE,
    CLASSIFY_HOLD,
    INITIAL_DELAY,
    INITIAL_MESSAGE,
    LINE_INTERVAL,
    VERDICT_STYLES,
    AnalysisPlan,
    plan_analysis,
    show_normal_result,
    special_message,
    verdict_text,
)

logger = logging.getLogger(__name__)

POST_FAILED_MESSAGE = 'Failed to post to Reddit. Please try again.'
SHARE_TOO_LARGE_MESSAGE = 'This photo is too large to post. Try a smaller one.'


def request_size_limit(max_upload_mb):
    """Body limit in bytes: room for the upload re-sent as base64 plus form overhead."""
    return (math.ceil(max_upload_mb * 4 / 3) + 1) * 1024 * 1024


def _check_upload_size(image_bytes):
    if len(image_bytes) > current_app.config['SETTINGS'].max_upload_mb * 1024 * 1024:
        abort(413)


def _services():
    return current_app.extensions['petitorcookit']


def _wants_json():
    return request.path.startswith('/api/')


def _api_image_payload():
    """Pull the image out of a JSON body as (data_url, image_bytes)."""
    data = request.get_json(silent=True) or {}
    image_data = data.get('image') or data.get('image_base64')
    if not image_data:
        raise ImageDecodeError('No image data provided')
    if not isinstance(image_data, str):
        raise ImageDecodeError('Image must be a base64 string or data URL')
    mime, image_bytes = decode_data_url(image_data)
    _check_upload_size(image_bytes)
    return encode_data_url(image_bytes, mime), image_bytes


def _classify(image_bytes):
    services = _services()
    pil_image = open_image(image_bytes)
    image_base64 = base64.b64encode(image_bytes).decode('ascii')
    return services['classifier'].classify(image_base64, pil_image=pil_image)


def _render_result(image_data_url, plan, *, animate=True, post_success=False,
                   post_url=None, error=None, selected_caption=DEFAULT_CAPTION,
                   custom_caption=''):
    return render_template(
        'result.html',
        image=image_data_url,
        plan=plan,
        animate=animate,
        special=plan.special,
        normal=show_normal_result(plan.category) and plan.verdict is not None,
        verdict_style=VERDICT_STYLES.get(plan.verdict),
        verdict_text=verdict_text(plan.verdict) if plan.verdict else None,
        captions=REDDIT_CAPTIONS,
        selected_caption=selected_caption,
        custom_caption=custom_caption,
        max_caption=MAX_CUSTOM_CAPTION,
        post_success=post_success,
        post_url=post_url,
        subreddit_url=SUBREDDIT_URL,
        error=error,
        initial_message=INITIAL_MESSAGE,
        classifying_message=CLASSIFYING_MESSAGE,
        initial_delay=INITIAL_DELAY,
        classify_hold=CLASSIFY_HOLD,
        line_interval=LINE_INTERVAL,
    )


def create_app(settings=None, classifier=None, share_client=None, rng=None, **overrides):
    settings = settings or Settings.from_env()
    if overrides:
        settings = settings.with_overrides(**overrides)

    app = Flask(__name__)
    max_bytes = request_size_limit(settings.max_upload_mb)
    app.config['MAX_CONTENT_LENGTH'] = max_bytes
    # The share form carries the photo back as a data URL field
    app.config['MAX_FORM_MEMORY_SIZE'] = max_bytes
    app.config['SETTINGS'] = settings
    CORS(app, resources={r'/api/*': {'origins': '*'}})  # Enable CORS for the API

    app.extensions['petitorcookit'] = {
        'classifier': classifier or ImageClassifier(settings, rng=rng),
        'share': share_client or ShareClient(settings),
        'rng': rng,
    }

    # --- Screens ---------------------------------------------------------

    @app.route('/', methods=['GET'])
    def home():
        return render_template('home.html')

    @app.route('/analyze', methods=['POST'])
    def analyze():
        upload = request.files.get('image')
        if upload is None or not upload.filename:
            return render_template('home.html', error='Pick a photo first.'), 400

        image_bytes = upload.read()
        _check_upload_size(image_bytes)
        mime = upload.mimetype or 'image/jpeg'
        try:
            classification = _classify(image_bytes)
        except ImageDecodeError as e:
            logger.warning('Rejected upload: %s', e)
            return render_template('home.html', error="That doesn't look like an image."), 400

        logger.info('Classified upload as %s (%.2f, source=%s)',
                    classification.category, classification.confidence, classification.source)
        plan = plan_analysis(classification.category, _services()['rng'])
        return _render_result(encode_data_url(image_bytes, mime), plan)

    @app.route('/share', methods=['POST'])
    def share():
        form = request.form
        verdict = form.get('verdict', '')
        image = form.get('image', '')
        selected = form.get('caption') or DEFAULT_CAPTION
        custom = form.get('custom_caption', '')
        plan = AnalysisPlan(category=form.get('category') or None, verdict=verdict)

        if verdict not in VERDICT_STYLES or not image:
            return render_template('home.html', error='Nothing to share. Try another photo.'), 400

        try:
            post_url = share_verdict(_services()['share'], verdict, selected, custom, image)
        except (CaptionError, ImageDecodeError) as e:
            return _render_result(image, plan, animate=False, error=str(e),
                                  selected_caption=selected, custom_caption=custom), 400
        except ShareError as e:
            logger.error('Failed to post to Reddit: %s', e)
            return _render_result(image, plan, animate=False, error=POST_FAILED_MESSAGE,
                                  selected_caption=selected, custom_caption=custom), 502

        return _render_result(image, plan, animate=False, post_success=True, post_url=post_url)

    # --- JSON API --------------------------------------------------------

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'ok',
            'vision_configured': bool(settings.vision_api_key),
            'local_labeler': settings.local_labeler,
        })

    @app.route('/api/classify', methods=['POST'])
    def api_classify():
        _, image_bytes = _api_image_payload()
        return jsonify(_classify(image_bytes).to_dict())

    @app.route('/api/analyze', methods=['POST'])
    def api_analyze():
        _, image_bytes = _api_image_payload()
        classification = _classify(image_bytes)
        plan = plan_analysis(classification.category, _services()['rng'])
        return jsonify({
            'classification': classification.to_dict(),
            'plan': plan.to_dict(),
            'special': special_message(classification.category),
        })

    @app.route('/api/share', methods=['POST'])
    def api_share():
        data = request.get_json(silent=True) or {}
        verdict = data.get('verdict')
        if verdict not in VERDICT_STYLES:
            return jsonify({'error': f'Unknown verdict: {verdict!r}'}), 400
        image_data_url, _ = _api_image_payload()
        post_url = share_verdict(
            _services()['share'],
            verdict,
            data.get('caption'),
            data.get('custom_caption'),
            image_data_url,
        )
        return jsonify({'url': post_url, 'subreddit_url': SUBREDDIT_URL})

    # --- Errors ----------------------------------------------------------

    @app.errorhandler(ImageDecodeError)
    def handle_bad_image(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(CaptionError)
    def handle_bad_caption(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(ShareError)
    def handle_share_error(e):
        logger.error('Failed to post to Reddit: %s', e)
        return jsonify({'error': POST_FAILED_MESSAGE, 'details': str(e)}), 502

    @app.errorhandler(413)
    def handle_too_large(e):
        message = f'Image is larger than {settings.max_upload_mb} MB'
        if _wants_json():
            return jsonify({'error': message}), 413
        if request.path == '/share':
            return render_template('home.html', error=SHARE_TOO_LARGE_MESSAGE), 413
        return render_template('home.html', error=message), 413

    return app


if __name__ == '__main__':
    from server import main
    main()
