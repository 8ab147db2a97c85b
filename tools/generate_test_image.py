"""
Generate test image for quadscan testing
Creates an A4-proportioned page (white, with a title bar and text lines)
photographed at an angle on a dark table, plus a JSON file with the
page corners so detection and correction can be checked by hand.
"""

import json
import os

import cv2
import numpy as np

# Configuration
PAGE_W, PAGE_H = 840, 1188          # A4 at roughly 100 DPI
PHOTO_W, PHOTO_H = 1200, 1600       # portrait phone photo

TABLE_BG = (40, 45, 50)
PAGE_BG = (245, 245, 240)
INK = (30, 30, 30)
TITLE_BAR = (200, 80, 50)

print("Generating test image:")
print(f"  Page: {PAGE_W}x{PAGE_H} px, photo: {PHOTO_W}x{PHOTO_H} px")

# Flat page with a coloured title bar so orientation is obvious
page = np.full((PAGE_H, PAGE_W, 3), PAGE_BG, dtype=np.uint8)
cv2.rectangle(page, (60, 60), (PAGE_W - 60, 160), TITLE_BAR, -1)
cv2.putText(page, "QUADSCAN", (90, 135), cv2.FONT_HERSHEY_SIMPLEX, 2.0, (255, 255, 255), 5)

for y in range(240, PAGE_H - 80, 48):
    line_end = PAGE_W - 80 - (y * 37) % 200
    cv2.line(page, (80, y), (line_end, y), INK, 6)

print("  [OK] Drew page content")

# Page corners in the photo: a page seen slightly from below and to the left
dst_points = np.array([
    [int(PHOTO_W * 0.18), int(PHOTO_H * 0.12)],   # top-left
    [int(PHOTO_W * 0.86), int(PHOTO_H * 0.08)],   # top-right
    [int(PHOTO_W * 0.92), int(PHOTO_H * 0.90)],   # bottom-right
    [int(PHOTO_W * 0.10), int(PHOTO_H * 0.86)],   # bottom-left
], dtype=np.float32)

src_points = np.array([
    [0, 0],
    [PAGE_W - 1, 0],
    [PAGE_W - 1, PAGE_H - 1],
    [0, PAGE_H - 1],
], dtype=np.float32)

transform_matrix = cv2.getPerspectiveTransform(src_points, dst_points)
photo = cv2.warpPerspective(page, transform_matrix, (PHOTO_W, PHOTO_H),
                            borderMode=cv2.BORDER_CONSTANT,
                            borderValue=TABLE_BG)

print("  [OK] Warped page into photo")

test_dir = os.path.join(os.path.dirname(__file__), "..", "test", "output")
os.makedirs(test_dir, exist_ok=True)

page_path = os.path.join(test_dir, "document_flat.png")
photo_path = os.path.join(test_dir, "document_photo.png")
# Drawn in RGB order; OpenCV writes BGR
cv2.imwrite(page_path, cv2.cvtColor(page, cv2.COLOR_RGB2BGR))
cv2.imwrite(photo_path, cv2.cvtColor(photo, cv2.COLOR_RGB2BGR))
print(f"\n[OK] Saved flat page: {page_path}")
print(f"[OK] Saved photo: {photo_path}")

metadata = {
    "description": "Synthetic document photo for quadscan",
    "page_px": [PAGE_W, PAGE_H],
    "photo_px": [PHOTO_W, PHOTO_H],
    "corners": {
        "top_left": dst_points[0].tolist(),
        "top_right": dst_points[1].tolist(),
        "bottom_right": dst_points[2].tolist(),
        "bottom_left": dst_points[3].tolist(),
    },
    "matrix": transform_matrix.tolist(),
}

metadata_path = os.path.join(test_dir, "document_photo.json")
with open(metadata_path, 'w') as f:
    json.dump(metadata, f, indent=2)
print(f"[OK] Saved corners and transform matrix: {metadata_path}")

corner_arg = " ".join(f"{x:.0f},{y:.0f}" for x, y in dst_points)
print("\nTo scan with auto-detection:")
print(f"  python quadscan.py {photo_path}")
print("To scan with the known corners:")
print(f"  python quadscan.py {photo_path} --corners \"{corner_arg}\"")
