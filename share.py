"""
Posting verdicts to r/PetItOrCookIt

The actual subreddit post is made by a remote share endpoint; this module
builds the composited image and sends it there as multipart form data.
"""

import logging

import requests

from captions import final_caption
from compositing import capture_image_with_verdict, decode_data_url
from verdict import VERDICTS

logger = logging.getLogger(__name__)

SUBREDDIT_URL = 'https://www.reddit.com/r/PetItOrCookIt/'


class ShareError(Exception):
    """Raised when the share endpoint does not return a post URL."""


class ShareClient:
    def __init__(self, settings, session=None):
        self.settings = settings
        self.session = session or requests.Session()

    def render(self, verdict, image_data_url):
        """Composite the verdict onto the uploaded image."""
        _, image_bytes = decode_data_url(image_data_url)
        return capture_image_with_verdict(
            image_bytes,
            verdict,
            font_path=self.settings.font_path,
            emoji_font_path=self.settings.emoji_font_path,
            max_pixels=self.settings.max_pixels,
            max_size_mb=self.settings.max_size_mb,
        )

    def post_verdict(self, verdict, caption, image_data_url):
        """Send the verdict image and caption; return the new post's URL."""
        if verdict not in VERDICTS:
            raise ValueError(f'Unknown verdict: {verdict!r}')

        logger.info('Capturing image with %s verdict overlay', verdict)
        image_blob = self.render(verdict, image_data_url)

        files = {'image': (f'verdict-{verdict}.jpg', image_blob, 'image/jpeg')}
        data = {'caption': caption}
        try:
            response = self.session.post(
                self.settings.share_endpoint_url,
                files=files,
                data=data,
                timeout=self.settings.share_timeout,
            )
        except requests.RequestException as e:
            raise ShareError(f'Share request failed: {e}') from e

        logger.info('Share endpoint responded with %s', response.status_code)
        if not response.ok:
            raise ShareError(f'HTTP {response.status_code}: {response.text}')

        try:
            url = response.json().get('url')
        except (ValueError, AttributeError) as e:
            raise ShareError(f'Share endpoint returned an unexpected payload: {e}') from e
        if not url:
            raise ShareError('Share endpoint response did not include a post URL')
        return url


def share_verdict(client, verdict, selected_caption, custom_caption, image_data_url):
    """Resolve the caption and post; CaptionError and ShareError propagate."""
    caption = final_caption(selected_caption, custom_caption)
    return client.post_verdict(verdict, caption, image_data_url)
