import time
from collections import deque

import cv2
import mediapipe as mp
import numpy as np

import config as cfg
from eye_state import EyeSample

mp_face = mp.solutions.face_mesh

# Eye landmark sets used to compute EAR (eye aspect ratio).
LEFT_EYE = [33, 160, 158, 133, 153, 144]
RIGHT_EYE = [362, 385, 387, 263, 373, 380]


def dist(a, b) -> float:
    return float(np.linalg.norm(a - b))


def eye_ear(pts, eye_idx) -> float:
    """
    EAR drops when the eye closes.
    Using a ratio helps reduce sensitivity to distance from the camera.
    """
    p1 = pts[eye_idx[0]]
    p2 = pts[eye_idx[1]]
    p3 = pts[eye_idx[2]]
    p4 = pts[eye_idx[3]]
    p5 = pts[eye_idx[4]]
    p6 = pts[eye_idx[5]]
    return (dist(p2, p6) + dist(p3, p5)) / (2.0 * dist(p1, p4) + 1e-6)


def now_ms() -> int:
    return int(time.monotonic() * 1000)


class FaceController:
    """
    Reads webcam frames and returns one EyeSample per frame with a face.
    """

    def __init__(self, cam_index=0):
        self.cap = cv2.VideoCapture(cam_index)
        if not self.cap.isOpened():
            raise RuntimeError("Could not open webcam.")

        self.face_mesh = mp_face.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5
        )

        # Short history buffers reduce landmark jitter without hiding a blink.
        self.earL_hist = deque(maxlen=cfg.EAR_SMOOTHING_FRAMES)
        self.earR_hist = deque(maxlen=cfg.EAR_SMOOTHING_FRAMES)

    def read_sample(self):
        """
        Returns (ok, sample). ok is False when the camera read failed;
        sample is None when no face was found in the frame.
        """
        ok, frame = self.cap.read()
        if not ok:
            return False, None
        stamp = now_ms()

        frame = cv2.flip(frame, 1)
        h, w = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        res = self.face_mesh.process(rgb)

        if not res.multi_face_landmarks:
            # Stale history would make the next face start half-closed.
            self.earL_hist.clear()
            self.earR_hist.clear()
            return True, None

        lm = res.multi_face_landmarks[0].landmark
        pts = np.array([(p.x * w, p.y * h) for p in lm], dtype=np.float32)

        self.earL_hist.append(eye_ear(pts, LEFT_EYE))
        self.earR_hist.append(eye_ear(pts, RIGHT_EYE))

        return True, EyeSample(
            left_ratio=float(np.mean(self.earL_hist)),
            right_ratio=float(np.mean(self.earR_hist)),
            timestamp_ms=stamp,
        )

    def release(self):
        """
        Clean shutdown avoids camera lock issues on reruns.
        """
        self.face_mesh.close()
        self.cap.release()
