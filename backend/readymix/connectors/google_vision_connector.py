"""
Google Cloud Vision Connector
Label detection and object localization over the Vision REST API

Author: ReadyMix
Date: 2025-06-08
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

import httpx

from readymix.core.config import settings
from readymix.core.exceptions import ConfigurationError, ReadyMixError, ValidationError

logger = logging.getLogger(__name__)

VISION_API_URL = "https://vision.googleapis.com/v1/images:annotate"
MAX_LABELS = 10


@dataclass
class VisionResult:
    labels: List[Dict[str, Any]] = field(default_factory=list)
    objects: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def label_texts(self) -> List[str]:
        return [label['description'] for label in self.labels if label.get('description')]


class GoogleVisionConnector:
    """
    Connector for the Google Cloud Vision images:annotate endpoint

    Uses an API key (settings.GOOGLE_VISION_API_KEY) instead of a service
    account so no Google SDK is needed.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_VISION_API_KEY
        if not self.api_key:
            raise ConfigurationError("Image analysis not configured")
        self.timeout = timeout

    async def annotate(self, image_bytes: bytes) -> VisionResult:
        """
        Run LABEL_DETECTION (top 10) and OBJECT_LOCALIZATION on an image

        Raises:
            ValidationError: Vision rejected the image (INVALID_ARGUMENT)
            ReadyMixError: Any other Vision API failure
        """
        payload = {
            'requests': [{
                'image': {'content': base64.b64encode(image_bytes).decode('ascii')},
                'features': [
                    {'type': 'LABEL_DETECTION', 'maxResults': MAX_LABELS},
                    {'type': 'OBJECT_LOCALIZATION'},
                ],
            }]
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                VISION_API_URL,
                params={'key': self.api_key},
                json=payload
            )

        if response.status_code == 400:
            raise ValidationError("Invalid image format. Please upload a valid image file.")
        if response.status_code == 403:
            raise ReadyMixError("Google Cloud Vision API access denied", 500)
        response.raise_for_status()

        result = (response.json().get('responses') or [{}])[0]
        if 'error' in result:
            message = result['error'].get('message', 'unknown error')
            logger.error(f"Vision API error: {message}")
            raise ReadyMixError(f"Google Cloud Vision API error: {message}", 500)

        labels = [
            {'description': label.get('description', ''), 'score': label.get('score', 0.0)}
            for label in result.get('labelAnnotations', [])
        ]
        objects = [
            {'name': obj.get('name', ''), 'score': obj.get('score', 0.0)}
            for obj in result.get('localizedObjectAnnotations', [])
        ]

        logger.info(f"Vision: {len(labels)} labels, {len(objects)} objects")
        return VisionResult(labels=labels, objects=objects)
