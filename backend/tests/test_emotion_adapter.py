"""
Tests del esquema emocional, del modo degradado y del adaptador DeepFace.
"""

import random
import threading
import time

import numpy as np
import pytest

from conftest import make_deepface_result
from moodify.core.emotion import deepface_adapter
from moodify.core.emotion.deepface_adapter import DeepFaceExpressionAdapter
from moodify.core.emotion.degraded import DEGRADED_EMOTIONS, make_degraded_sample
from moodify.core.emotion.schema import (
    STANDARD_EMOTIONS,
    normalize_emotion,
    round_expression_scores,
    select_top_expression
)
from moodify.core.errors import (
    CapabilityError,
    ConnectivityError,
    InferenceTimeoutError,
    MoodifyError
)


@pytest.fixture
def supported(monkeypatch):
    """Simula un entorno con backend de inferencia disponible."""
    monkeypatch.setattr(deepface_adapter, 'check_inference_support', lambda require_gpu=False: None)


def frame(width=200, height=100):
    return np.zeros((height, width, 3), dtype=np.uint8)


# ===== ESQUEMA =====

def test_normalize_emotion_maps_deepface_labels():
    assert normalize_emotion('surprise') == 'surprised'
    assert normalize_emotion('fear') == 'fearful'
    assert normalize_emotion('Disgust') == 'disgusted'
    assert normalize_emotion('confused') is None


def test_round_expression_scores_keeps_order_and_rounds():
    scores = round_expression_scores({'angry': 0.4, 'happy': 61.6, 'surprise': 150.0, 'xyz': 9})
    assert list(scores) == ['angry', 'happy', 'surprised']
    assert scores == {'angry': 0, 'happy': 62, 'surprised': 100}


def test_select_top_expression_first_label_wins_ties():
    assert select_top_expression({'sad': 40, 'happy': 40, 'angry': 10}) == ('sad', 40)
    assert select_top_expression({}) is None


# ===== MODO DEGRADADO =====

def test_degraded_sample_is_flagged_and_plausible():
    sample = make_degraded_sample((640, 480), rng=random.Random(7))

    assert sample['degraded'] is True
    assert sample['emotion'] in DEGRADED_EMOTIONS
    assert 70 <= sample['confidence'] <= 99
    assert set(sample['expressions']) == set(STANDARD_EMOTIONS)
    assert sample['expressions'][sample['emotion']] == sample['confidence']
    assert sample['boundingBox'] == pytest.approx(
        {'x': 192.0, 'y': 96.0, 'width': 256.0, 'height': 240.0}
    )


def test_degraded_sample_without_frame_size_has_no_box():
    assert 'boundingBox' not in make_degraded_sample()


# ===== ADAPTADOR =====

def test_infer_returns_top_expression(supported):
    adapter = DeepFaceExpressionAdapter(analyze_fn=lambda **kwargs: make_deepface_result())

    sample = adapter.infer(frame())

    assert sample['emotion'] == 'happy'
    assert sample['confidence'] == 87
    assert sample['degraded'] is False
    assert sample['expressions']['surprised'] == 1
    assert sample['boundingBox'] == {'x': 40, 'y': 30, 'width': 120, 'height': 140}
    assert adapter.models_loaded


def test_infer_below_minimum_confidence_is_no_face(supported):
    scores = {'angry': 29.0, 'happy': 25.0, 'sad': 20.0, 'neutral': 26.0}
    adapter = DeepFaceExpressionAdapter(analyze_fn=lambda **kwargs: make_deepface_result(scores))

    assert adapter.infer(frame()) is None


def test_infer_low_face_confidence_is_no_face(supported):
    adapter = DeepFaceExpressionAdapter(
        analyze_fn=lambda **kwargs: make_deepface_result(face_confidence=0.2)
    )

    assert adapter.infer(frame()) is None


def test_models_are_loaded_once(supported):
    calls = []

    def analyze(**kwargs):
        calls.append(kwargs['img_path'].shape)
        return make_deepface_result()

    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze)
    adapter.infer(frame())
    adapter.infer(frame())
    DeepFaceExpressionAdapter(analyze_fn=analyze).infer(frame())

    # Un único calentamiento (imagen 100x100) seguido de tres inferencias
    assert calls[0] == (100, 100, 3)
    assert len(calls) == 4


def test_generic_failure_returns_degraded_sample(supported):
    state = {'warm': False}

    def analyze(**kwargs):
        if not state['warm']:
            state['warm'] = True
            return make_deepface_result()
        raise ValueError('fallo del detector')

    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze, degraded_mode=True)
    sample = adapter.infer(frame(200, 100))

    assert sample['degraded'] is True
    assert sample['boundingBox']['x'] == pytest.approx(60.0)


def test_generic_failure_propagates_without_degraded_mode(supported):
    state = {'warm': False}

    def analyze(**kwargs):
        if not state['warm']:
            state['warm'] = True
            return make_deepface_result()
        raise ValueError('fallo del detector')

    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze, degraded_mode=False)

    with pytest.raises(MoodifyError) as excinfo:
        adapter.infer(frame())
    assert 'fallo del detector' in excinfo.value.detail


def test_timeout_is_an_error_not_a_missing_face(supported):
    state = {'warm': False}

    def analyze(**kwargs):
        if not state['warm']:
            state['warm'] = True
            return make_deepface_result()
        time.sleep(0.5)
        return make_deepface_result()

    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze, timeout=0.05, degraded_mode=False)
    try:
        with pytest.raises(InferenceTimeoutError):
            adapter.infer(frame())
    finally:
        adapter.close()


@pytest.fixture
def first_call_hangs():
    """
    Análisis cuya primera inferencia real se bloquea y las siguientes
    responden al instante. La primera llamada es el calentamiento.
    """
    release = threading.Event()
    calls = []

    def analyze(**kwargs):
        calls.append(kwargs)
        if len(calls) == 2:
            release.wait(5.0)
        return make_deepface_result()

    yield analyze, calls
    release.set()


def test_inference_after_timeout_gets_fresh_budget(supported, first_call_hangs):
    analyze, calls = first_call_hangs
    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze, timeout=0.2, degraded_mode=False)
    try:
        with pytest.raises(InferenceTimeoutError):
            adapter.infer(frame())

        sample = adapter.infer(frame())
    finally:
        adapter.close()

    assert sample['emotion'] == 'happy'
    assert sample['degraded'] is False
    assert len(calls) == 3


def test_timeout_is_masked_in_degraded_mode(supported, first_call_hangs):
    analyze, calls = first_call_hangs
    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze, timeout=0.2, degraded_mode=True)
    try:
        masked = adapter.infer(frame())
        real = adapter.infer(frame())
    finally:
        adapter.close()

    assert masked['degraded'] is True
    assert real['degraded'] is False
    assert real['confidence'] == 87


def test_capability_error_is_never_masked(monkeypatch):
    def unsupported(require_gpu=False):
        raise CapabilityError()

    monkeypatch.setattr(deepface_adapter, 'check_inference_support', unsupported)
    calls = []
    adapter = DeepFaceExpressionAdapter(
        analyze_fn=lambda **kwargs: calls.append(kwargs),
        degraded_mode=True
    )

    with pytest.raises(CapabilityError):
        adapter.infer(frame())
    assert calls == []
    assert not adapter.models_loaded


def test_load_failure_is_connectivity_error(supported):
    def analyze(**kwargs):
        raise OSError('no se pudo descargar facial_expression_model_weights.h5')

    adapter = DeepFaceExpressionAdapter(analyze_fn=analyze, degraded_mode=True)

    with pytest.raises(ConnectivityError) as excinfo:
        adapter.infer(frame())
    assert 'facial_expression_model_weights' in excinfo.value.detail
    assert not adapter.models_loaded


def test_capability_check_is_memoized(monkeypatch):
    monkeypatch.setattr(deepface_adapter.importlib.util, 'find_spec', lambda name: None)

    with pytest.raises(CapabilityError):
        deepface_adapter.check_inference_support()

    # El resultado queda memoizado aunque el entorno cambie
    monkeypatch.setattr(deepface_adapter.importlib.util, 'find_spec', lambda name: object())
    with pytest.raises(CapabilityError):
        deepface_adapter.check_inference_support()
