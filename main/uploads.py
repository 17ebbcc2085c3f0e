"""
Image upload delegate.

Files are forwarded to the external image host (Cloudinary's upload API) and
only the resulting URL and public id are kept locally.
"""
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

API_BASE_URL = 'https://api.cloudinary.com/v1_1'


class UploadError(Exception):
    """The image host refused or failed an upload/destroy request."""


@dataclass
class UploadedImage:
    url: str
    public_id: str


@dataclass
class UploadOutcome:
    name: str
    image: Optional[UploadedImage] = None
    error: Optional[UploadError] = None

    @property
    def ok(self):
        return self.error is None


@dataclass
class BatchUpload:
    outcomes: List[UploadOutcome]

    @property
    def succeeded(self):
        return [outcome.image for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self):
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def all_ok(self):
        return not self.failed


def _config():
    return settings.IMAGE_HOST


def _sign(params, api_secret):
    payload = '&'.join(f'{key}={params[key]}' for key in sorted(params))
    return hashlib.sha1(f'{payload}{api_secret}'.encode('utf-8')).hexdigest()


def _signed_params(extra=None):
    config = _config()
    params = {'timestamp': int(time.time())}
    if extra:
        params.update(extra)
    params['signature'] = _sign(params, config['API_SECRET'])
    params['api_key'] = config['API_KEY']
    return params


def _endpoint(action):
    return f"{API_BASE_URL}/{_config()['CLOUD_NAME']}/image/{action}"


def upload_image(file) -> UploadedImage:
    """Upload one file object (an UploadedFile or anything with .read())."""
    name = getattr(file, 'name', 'upload')
    try:
        response = requests.post(
            _endpoint('upload'),
            data=_signed_params(),
            files={'file': (name, file.read())},
            timeout=_config()['TIMEOUT'],
        )
        response.raise_for_status()
        result = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Image upload failed for {name}: {e}")
        raise UploadError(f'Failed to upload image {name}') from e

    if 'secure_url' not in result or 'public_id' not in result:
        logger.error(f"Image host returned an unexpected payload for {name}")
        raise UploadError(f'Failed to upload image {name}')

    logger.info(f"Image uploaded: {result['public_id']}")
    return UploadedImage(url=result['secure_url'], public_id=result['public_id'])


def upload_images(files) -> BatchUpload:
    """
    Upload every file and collect the outcome of each one.

    Nothing is decided here: the caller inspects the batch and chooses
    between accepting the successes and rolling them back.
    """
    outcomes = []
    for file in files:
        name = getattr(file, 'name', 'upload')
        try:
            outcomes.append(UploadOutcome(name=name, image=upload_image(file)))
        except UploadError as e:
            outcomes.append(UploadOutcome(name=name, error=e))
    return BatchUpload(outcomes=outcomes)


def destroy_image(public_id):
    try:
        response = requests.post(
            _endpoint('destroy'),
            data=_signed_params({'public_id': public_id}),
            timeout=_config()['TIMEOUT'],
        )
        response.raise_for_status()
        result = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to delete remote image {public_id}: {e}")
        raise UploadError(f'Failed to delete image {public_id}') from e

    logger.info(f"Remote image {public_id} deleted: {result.get('result')}")
    return result
