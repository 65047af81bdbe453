"""YOLOv8 ONNX inference adapter running on OpenCV DNN."""

import os
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from ..exceptions import ModelLoadError
from .interfaces import DetectorInterface
from ..logging_config import get_logger

logger = get_logger("yolo_detector")


class YoloDetector(DetectorInterface):
    """Runs a YOLOv8 ONNX export and emits raw detection records.

    Output records have the shape ``{"tag": label, "box": [x1, y1, x2, y2, score]}``
    in frame pixel coordinates, ready for the detection normalizer.
    """

    def __init__(self,
                 model_path: str = "models/yolov8n.onnx",
                 labels_path: str = "models/labels.txt",
                 input_size: int = 640,
                 confidence_threshold: float = 0.4,
                 iou_threshold: float = 0.4,
                 class_threshold: float = 0.5):
        self.model_path = model_path
        self.labels_path = labels_path
        self.input_size = input_size
        self.confidence_threshold = confidence_threshold
        self.iou_threshold = iou_threshold
        self.class_threshold = class_threshold

        self.net = None
        self.labels: List[str] = []
        self.inference_count = 0

    @property
    def model_loaded(self) -> bool:
        return self.net is not None

    @property
    def score_threshold(self) -> float:
        return max(self.confidence_threshold, self.class_threshold)

    def load_model(self) -> None:
        """Load the ONNX network and its labels file."""
        if not os.path.exists(self.model_path):
            raise ModelLoadError(f"Model file not found: {self.model_path}")

        self.labels = self.load_labels(self.labels_path)

        try:
            self.net = cv2.dnn.readNetFromONNX(self.model_path)
        except cv2.error as e:
            raise ModelLoadError(f"Failed to load model {self.model_path}: {e}") from e

        logger.info(f"Loaded model {self.model_path} with {len(self.labels)} labels")

    @staticmethod
    def load_labels(labels_path: str) -> List[str]:
        """Read one label per line, skipping blank lines."""
        try:
            with open(labels_path, 'r', encoding='utf-8') as f:
                labels = [line.strip() for line in f if line.strip()]
        except OSError as e:
            raise ModelLoadError(f"Failed to read labels {labels_path}: {e}") from e

        if not labels:
            raise ModelLoadError(f"Labels file is empty: {labels_path}")
        return labels

    def detect(self, frame: np.ndarray) -> List[Dict[str, Any]]:
        """Run inference on one BGR frame."""
        if self.net is None:
            raise RuntimeError("Model not loaded")

        frame_height, frame_width = frame.shape[:2]
        blob = cv2.dnn.blobFromImage(frame, scalefactor=1.0 / 255.0,
                                     size=(self.input_size, self.input_size),
                                     swapRB=True, crop=False)
        self.net.setInput(blob)
        output = self.net.forward()
        self.inference_count += 1

        return self.postprocess(output, frame_width, frame_height)

    def postprocess(self, output: np.ndarray, frame_width: int, frame_height: int) -> List[Dict[str, Any]]:
        """Decode YOLOv8 output of shape (1, 4 + classes, N) into raw records."""
        predictions = np.squeeze(np.asarray(output), axis=0).T
        if predictions.ndim != 2 or predictions.shape[1] <= 4:
            logger.warning(f"Unexpected model output shape: {np.shape(output)}")
            return []

        class_scores = predictions[:, 4:]
        class_ids = np.argmax(class_scores, axis=1)
        scores = class_scores[np.arange(len(class_ids)), class_ids]

        keep = scores >= self.score_threshold
        if not np.any(keep):
            return []

        predictions = predictions[keep]
        class_ids = class_ids[keep]
        scores = scores[keep]

        scale_x = frame_width / float(self.input_size)
        scale_y = frame_height / float(self.input_size)

        boxes = []
        for center_x, center_y, box_w, box_h in predictions[:, :4]:
            left = (center_x - box_w / 2.0) * scale_x
            top = (center_y - box_h / 2.0) * scale_y
            boxes.append([float(left), float(top), float(box_w * scale_x), float(box_h * scale_y)])

        indices = cv2.dnn.NMSBoxes(boxes, scores.astype(float).tolist(),
                                   self.score_threshold, self.iou_threshold)

        detections = []
        for index in np.array(indices).flatten():
            left, top, width, height = boxes[int(index)]
            detections.append({
                'tag': self._label_for(int(class_ids[index])),
                'box': [left, top, left + width, top + height, float(scores[index])],
            })

        logger.debug(f"Decoded {len(detections)} detections")
        return detections

    def _label_for(self, class_id: int) -> str:
        if 0 <= class_id < len(self.labels):
            return self.labels[class_id]
        return str(class_id)

    def get_model_info(self) -> Dict[str, Optional[Any]]:
        return {
            "model_path": self.model_path,
            "model_loaded": self.model_loaded,
            "labels": len(self.labels),
            "input_size": self.input_size,
            "score_threshold": self.score_threshold,
            "iou_threshold": self.iou_threshold,
            "inference_count": self.inference_count,
        }
