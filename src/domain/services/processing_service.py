from __future__ import annotations

import numpy as np


class ProcessingService:
    """Pure NumPy geometric transforms. Inputs and outputs are float32 arrays normalized to [0, 1].

    Channel convention:
    - Grayscale: (H, W)
    - RGB / RGBA: (H, W, C)
    """

    # Crop region [y : y + height, x : x + width]
    @staticmethod
    def crop(matrix: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
        h, w = matrix.shape[:2]
        if width <= 0 or height <= 0:
            raise ValueError("crop width and height must be > 0")
        if x < 0 or y < 0 or x + width > w or y + height > h:
            raise ValueError(f"crop region exceeds source bounds {w}x{h}")
        return matrix.astype(np.float32)[y : y + height, x : x + width].copy()

    # Rotate clockwise by a right angle. 90 and 270 swap width and height.
    @staticmethod
    def rotate(matrix: np.ndarray, degrees: int) -> np.ndarray:
        if degrees % 90 != 0:
            raise ValueError("only right-angle rotations are supported")
        k = (int(degrees) // 90) % 4
        # np.rot90 turns counter-clockwise for positive k
        return np.ascontiguousarray(np.rot90(matrix.astype(np.float32), k=-k, axes=(0, 1)))

    # Mirror left-right (horizontal) or top-bottom (vertical)
    @staticmethod
    def flip(matrix: np.ndarray, direction: str) -> np.ndarray:
        mat = matrix.astype(np.float32)
        if direction == "horizontal":
            return np.ascontiguousarray(mat[:, ::-1])
        if direction == "vertical":
            return np.ascontiguousarray(mat[::-1, :])
        raise ValueError(f"unsupported flip direction: {direction}")

    # Resize into a width x height box. The box is clipped to the source size so the
    # image is never enlarged.
    #   inside:  keep aspect ratio, fit within the box
    #   contain: as inside, then pad with zeros to the box
    #   fill:    stretch to the box
    #   cover:   keep aspect ratio, cover the box, centre-crop the overflow
    @staticmethod
    def resize(matrix: np.ndarray, width: int, height: int, fit: str = "inside") -> np.ndarray:
        if width <= 0 or height <= 0:
            raise ValueError("resize width and height must be > 0")
        mat = matrix.astype(np.float32)
        h, w = mat.shape[:2]
        box_w = min(int(width), w)
        box_h = min(int(height), h)

        if fit == "fill":
            return ProcessingService._resize_nearest(mat, (box_h, box_w))

        if fit in ("inside", "contain"):
            scale = min(box_w / w, box_h / h, 1.0)
            new_w = max(1, min(box_w, round(w * scale)))
            new_h = max(1, min(box_h, round(h * scale)))
            out = ProcessingService._resize_nearest(mat, (new_h, new_w))
            if fit == "inside" or (new_w == box_w and new_h == box_h):
                return out
            padded = np.zeros((box_h, box_w) + mat.shape[2:], dtype=np.float32)
            top = (box_h - new_h) // 2
            left = (box_w - new_w) // 2
            padded[top : top + new_h, left : left + new_w] = out
            return padded

        if fit == "cover":
            scale = min(max(box_w / w, box_h / h), 1.0)
            new_w = max(box_w, round(w * scale))
            new_h = max(box_h, round(h * scale))
            new_w, new_h = min(new_w, w), min(new_h, h)
            scaled = ProcessingService._resize_nearest(mat, (new_h, new_w))
            top = (new_h - box_h) // 2
            left = (new_w - box_w) // 2
            return scaled[top : top + box_h, left : left + box_w].copy()

        raise ValueError(f"unsupported resize fit: {fit}")

    # --------- helpers ---------
    @staticmethod
    def _resize_nearest(img: np.ndarray, target_hw: tuple[int, int]) -> np.ndarray:
        th, tw = target_hw
        h, w = img.shape[:2]
        if h == th and w == tw:
            return img.astype(np.float32)
        # create index grid mapping target->source
        ys = (np.arange(th) * (h / th)).astype(np.int64)
        xs = (np.arange(tw) * (w / tw)).astype(np.int64)
        ys = np.clip(ys, 0, h - 1)
        xs = np.clip(xs, 0, w - 1)
        if img.ndim == 2:
            return img[ys[:, None], xs[None, :]].astype(np.float32)
        return img[ys[:, None], xs[None, :], :].astype(np.float32)
