import numpy as np
import pytest

from textwatch.detection import (
    TextDetector,
    bounding_rect,
    detection_input_size,
    expand_box,
    find_text_boxes,
    min_area_box,
    preprocess_detection,
)


@pytest.mark.parametrize("size", [(1920, 1080), (640, 480), (300, 1000), (960, 960)])
def test_input_size_is_multiple_of_32_and_bounded(size):
    w, h = detection_input_size(*size, 960)
    assert w % 32 == 0 and h % 32 == 0
    assert max(w, h) <= 960
    assert w > 0 and h > 0


def test_input_size_square_keeps_max_size():
    assert detection_input_size(960, 960, 960) == (960, 960)


def test_input_size_too_narrow_raises():
    with pytest.raises(ValueError):
        detection_input_size(10, 1000, 960)


def test_preprocess_shapes_match_input_size():
    image = np.zeros((480, 640, 3), dtype=np.uint8)
    tensor, resized = preprocess_detection(image, 960)
    w, h = detection_input_size(640, 480, 960)
    assert tensor.shape == (1, 3, h, w)
    assert resized.shape == (h, w, 3)
    assert tensor.dtype == np.float32


def test_preprocess_converts_bgr_to_rgb():
    image = np.empty((100, 200, 3), dtype=np.uint8)
    image[:] = (10, 20, 30)
    tensor, resized = preprocess_detection(image, 960)
    assert np.allclose(tensor[0, 0], 30 / 255.0)
    assert np.allclose(tensor[0, 2], 10 / 255.0)
    assert tuple(resized[0, 0]) == (30, 20, 10)


def test_preprocess_empty_raises():
    with pytest.raises(ValueError):
        preprocess_detection(np.zeros((0, 0, 3), dtype=np.uint8))


def test_bounding_rect_single_point():
    assert bounding_rect([(7, 9)]) == (7, 9, 1, 1)


def test_bounding_rect_empty_raises():
    with pytest.raises(ValueError):
        bounding_rect([])


def test_min_area_box_axis_aligned():
    points = [(x, y) for x in range(3, 9) for y in range(2, 5)]
    corners = {(3, 2), (8, 2), (8, 4), (3, 4)}
    assert set(min_area_box(points)) == corners


def test_min_area_box_diamond():
    diamond = [(0, 5), (5, 0), (10, 5), (5, 10)]
    assert set(min_area_box(diamond)) == set(diamond)


def test_min_area_box_single_point():
    assert min_area_box([(4, 6)]) == [(4, 6)] * 4


def test_min_area_box_empty_raises():
    with pytest.raises(ValueError):
        min_area_box([])


def test_find_text_boxes_separate_blobs():
    scores = np.zeros((40, 60), dtype=np.float32)
    blobs = [(2, 5, 3, 9), (20, 30, 10, 50)]
    for y0, y1, x0, x1 in blobs:
        scores[y0:y1, x0:x1] = 0.9
    boxes = find_text_boxes(scores, 0.3)
    rects = {bounding_rect(b) for b in boxes}
    assert rects == {(x0, y0, x1 - x0, y1 - y0) for y0, y1, x0, x1 in blobs}


def test_find_text_boxes_ignores_nested_region():
    scores = np.zeros((30, 30), dtype=np.float32)
    scores[5:25, 5:25] = 0.9
    scores[8:22, 8:22] = 0.0
    scores[12:16, 12:16] = 0.9
    boxes = find_text_boxes(scores, 0.3)
    assert len(boxes) == 1
    assert bounding_rect(boxes[0]) == (5, 5, 20, 20)


def test_find_text_boxes_threshold_is_strict():
    scores = np.full((10, 10), 0.3, dtype=np.float32)
    assert find_text_boxes(scores, 0.3) == []


def test_expand_box_zero_ratio_is_bounding_rect():
    box = [(10, 20), (30, 20), (30, 40), (10, 40)]
    assert expand_box(box, 0.0, 0.0, 100, 100) == bounding_rect(box)


def test_expand_box_contains_original_and_stays_in_image():
    box = [(40, 40), (60, 40), (60, 50), (40, 50)]
    x, y, w, h = expand_box(box, 0.2, 0.5, 100, 100)
    bx, by, bw, bh = bounding_rect(box)
    assert x <= bx and y <= by
    assert x + w >= bx + bw and y + h >= by + bh
    assert x >= 0 and y >= 0 and x + w <= 100 and y + h <= 100


def test_expand_box_clips_to_image():
    box = [(0, 0), (99, 0), (99, 99), (0, 99)]
    assert expand_box(box, 3.0, 3.0, 100, 100) == (0, 0, 100, 100)


def _uniform_frame():
    frame = np.empty((240, 320, 3), dtype=np.uint8)
    frame[:] = (10, 20, 30)
    return frame


def test_detector_returns_bgr_crops():
    seen = []

    def session(tensor):
        seen.append(tensor.shape)
        out = np.zeros((1, 1, tensor.shape[2], tensor.shape[3]), dtype=np.float32)
        out[0, 0, 100:120, 200:300] = 0.9
        return [out]

    crops = TextDetector(session).detect(_uniform_frame())
    assert seen[0][:2] == (1, 3)
    assert len(crops) == 1
    crop = crops[0]
    assert crop.shape[2] == 3
    assert crop.shape[0] >= 20 and crop.shape[1] >= 100
    assert (crop == np.array([10, 20, 30], dtype=np.uint8)).all()


def test_detector_respects_threshold():
    def session(tensor):
        return np.full((1, 1, tensor.shape[2], tensor.shape[3]), 0.5, dtype=np.float32)

    assert TextDetector(session, threshold=0.6).detect(_uniform_frame()) == []
    assert len(TextDetector(session, threshold=0.4).detect(_uniform_frame())) == 1


def test_detector_failure_returns_empty():
    def session(tensor):
        raise RuntimeError("model failed")

    assert TextDetector(session).detect(_uniform_frame()) == []


def test_detector_empty_frame_returns_empty():
    calls = []
    detector = TextDetector(lambda t: calls.append(t))
    assert detector.detect(np.zeros((0, 0, 3), dtype=np.uint8)) == []
    assert calls == []