# threadart_app/tests/test_renderer.py

import io

import numpy as np
from django.test import SimpleTestCase
from PIL import Image

from threadart_app.export import connections_to_csv, field_to_png
from threadart_app.geometry import CircleFrame, RectangleFrame
from threadart_app.models import ConfigurationError, Connection
from threadart_app.renderer import (
    pin_labels_to_show,
    render_frame_preview,
    to_display_buffer,
    to_image,
)


class DisplayBufferTests(SimpleTestCase):
    def test_grey_channels_and_opaque_alpha(self):
        field = np.array([0.0, 0.5, 1.0, 0.2])
        buf = to_display_buffer(field, 2)

        self.assertEqual(buf.shape, (2, 2, 4))
        self.assertEqual(buf.dtype, np.uint8)
        # 0.5 * 255 = 127.5 rounds half up
        self.assertEqual(buf[0, 1].tolist(), [128, 128, 128, 255])
        self.assertEqual(buf[0, 0].tolist(), [0, 0, 0, 255])
        self.assertEqual(buf[1, 0].tolist(), [255, 255, 255, 255])
        self.assertEqual(buf[1, 1].tolist(), [51, 51, 51, 255])

    def test_wrong_size_rejected(self):
        with self.assertRaises(ConfigurationError):
            to_display_buffer(np.ones(10), 3)

    def test_to_image_and_png(self):
        field = np.linspace(0, 1, 16)
        img = to_image(field, 4)
        self.assertEqual(img.mode, "RGBA")
        self.assertEqual(img.size, (4, 4))

        png = field_to_png(field, 4)
        decoded = Image.open(io.BytesIO(png))
        self.assertEqual(decoded.size, (4, 4))
        self.assertEqual(decoded.getpixel((3, 3)), (255, 255, 255, 255))


class FramePreviewTests(SimpleTestCase):
    def test_render_frame_preview_draws_pins(self):
        img = render_frame_preview(CircleFrame(24), 200)

        self.assertIsInstance(img, Image.Image)
        self.assertEqual(img.size, (200, 200))
        data = np.array(img)
        # pin 1 sits at the top centre and is highlighted red
        r, g, b = data[2, 100]
        self.assertGreater(int(r), int(b))

    def test_rectangle_preview(self):
        img = render_frame_preview(RectangleFrame(40, ratio=2.0), 120)
        self.assertEqual(img.size, (120, 120))

    def test_pin_labels_to_show(self):
        labels = pin_labels_to_show(200)
        self.assertTrue({1, 51, 101, 151, 200} <= labels)
        self.assertIn(17, labels)  # stride of 200 // 12 = 16
        self.assertTrue(all(1 <= p <= 200 for p in labels))


class ExportTests(SimpleTestCase):
    def test_connections_to_csv(self):
        conns = [Connection(1, 1, 5), Connection(2, 5, 3)]
        self.assertEqual(
            connections_to_csv(conns),
            "step,start_pin,end_pin\n1,1,5\n2,5,3\n",
        )

    def test_empty_csv_has_header(self):
        self.assertEqual(connections_to_csv([]), "step,start_pin,end_pin\n")
