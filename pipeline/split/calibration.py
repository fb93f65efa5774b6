"""
Model-assisted split calibration.

A vision model labels sample pages with a split position; those labels train
the linear model in pipeline.split.model, which then predicts positions for
the rest of the library without further model calls.
"""

import base64
import io
import uuid
from typing import Any, Dict, List, Optional

from PIL import Image

from infra.errors import NotFound, UpstreamError, ValidationError
from infra.gemini.response_parser import parse_json_text
from infra.storage.documents import now_iso
from pipeline.prompts import SPLIT_LABEL_PROMPT
from pipeline.split.detection import detect_split, to_grayscale
from pipeline.split.features import extract_features
from pipeline.split.model import predict_with_model, train_model

CONFIDENCE_LEVELS = ('high', 'medium', 'low')


def image_part(img: Image.Image) -> Dict[str, Any]:
    buffered = io.BytesIO()
    img.convert('RGB').save(buffered, format="JPEG", quality=90)
    return {
        'inline_data': {
            'mime_type': 'image/jpeg',
            'data': base64.b64encode(buffered.getvalue()).decode('utf-8'),
        }
    }


def parse_label(text: str) -> Dict[str, Any]:
    parsed = parse_json_text(text)
    try:
        position = int(round(float(parsed.get('splitPosition', 500))))
    except (TypeError, ValueError):
        raise UpstreamError(f"Unreadable split position: {parsed.get('splitPosition')!r}")

    confidence = parsed.get('confidence') or 'medium'
    if confidence not in CONFIDENCE_LEVELS:
        confidence = 'medium'

    return {
        'is_two_page_spread': bool(parsed.get('isTwoPageSpread', True)),
        'target_position': min(1000, max(0, position)),
        'target_confidence': confidence,
        'reasoning': parsed.get('reasoning', ''),
    }


class SplitCalibrator:

    def __init__(self, services):
        self.library = services.library
        self.provider = services.provider
        self.image_loader = services.image_loader
        self.config = services.config
        self.logger = services.library.logger("split")

    def label_page(self, page_id: str, model: Optional[str] = None) -> Dict[str, Any]:
        """Ask the vision model where to split one page and store it as a training example."""
        page = self.library.pages.require(page_id)
        img = self.image_loader.load_image(page)
        model = model or self.config.defaults.model

        text = self.provider.generate_content(
            model, [{'text': SPLIT_LABEL_PROMPT}, image_part(img)], json_response=True
        )
        label = parse_label(text)

        example = {
            'page_id': page_id,
            'book_id': page['book_id'],
            'features': extract_features(img),
            'model': model,
            'created_at': now_iso(),
            **label,
        }
        self.library.split_examples.save(example)

        self.logger.info(
            f"Labelled split at {label['target_position']} ({label['target_confidence']})",
            book_id=page['book_id'],
            page_id=page_id,
        )
        return example

    def label_book(self, book_id: str, limit: int = 20, model: Optional[str] = None) -> Dict[str, Any]:
        """Label up to `limit` pages of a book that have no example yet."""
        if limit < 1:
            raise ValidationError("limit must be at least 1", limit=limit)

        labelled = {e['page_id'] for e in self.library.split_examples.find({'book_id': book_id})}
        pages = [p for p in self.library.list_pages(book_id) if p['id'] not in labelled][:limit]

        examples = []
        errors = []
        for page in pages:
            try:
                examples.append(self.label_page(page['id'], model=model))
            except (UpstreamError, OSError, ValueError) as e:
                self.logger.warning("Split labelling failed", book_id=book_id, page_id=page['id'], error=str(e))
                errors.append({'page_id': page['id'], 'error': str(e)})

        return {'labelled': len(examples), 'failed': len(errors), 'errors': errors}

    def examples(self, book_id: Optional[str] = None) -> List[Dict[str, Any]]:
        filter = {'is_two_page_spread': True}
        if book_id:
            filter['book_id'] = book_id
        return self.library.split_examples.find(filter, sort='created_at')

    def active_model(self) -> Optional[Dict[str, Any]]:
        active = self.library.split_models.find(
            {'is_active': True}, sort=[('trained_at', -1)], limit=1
        )
        return active[0] if active else None

    def train(self, book_id: Optional[str] = None, seed: Optional[int] = None) -> Dict[str, Any]:
        """Fit a model on stored spread examples and make it the active one."""
        result = train_model(self.examples(book_id), seed=seed)

        models = self.library.split_models
        for previous in models.find({'is_active': True}):
            models.update_one(previous['id'], {'is_active': False})

        doc = {
            'id': uuid.uuid4().hex,
            'version': models.count() + 1,
            'is_active': True,
            'book_id': book_id,
            **result,
        }
        models.insert(doc)

        self.logger.info(
            f"Trained split model v{doc['version']} on {doc['training_size']} examples "
            f"(validation MSE {doc['validation_mse']:.1f})"
        )
        return doc

    def predict_page(self, page_id: str) -> Dict[str, Any]:
        model = self.active_model()
        if model is None:
            raise NotFound("No active split model; label pages and train first")

        page = self.library.pages.require(page_id)
        img = self.image_loader.load_image(page)
        heuristic = detect_split(to_grayscale(img))

        return {
            'page_id': page_id,
            'split_position': predict_with_model(model['weights'], extract_features(img)),
            'model_version': model['version'],
            'heuristic': heuristic.to_dict(),
        }
