import unittest

from app.models import FeatureVector, ImageTypeLabel
from app.services.phase1_classifier import NOT_ANATOMY_MESSAGE, phase1_classifier


def features(**overrides):
    values = dict(
        grayscale_ratio=0.9,
        dark_ratio=0.25,
        contrast_ratio=0.45,
        bright_ratio=0.2,
        very_dark_ratio=0.25,
        mid_tone_ratio=0.45,
        width=512,
        height=512,
    )
    values.update(overrides)
    return FeatureVector(**values)


class TestPhase1Classifier(unittest.TestCase):
    def test_xray(self):
        res = phase1_classifier.classify(features())
        self.assertTrue(res.accepted)
        self.assertEqual(res.type_label, ImageTypeLabel.XRAY)
        self.assertEqual(res.confidence, 90)
        self.assertFalse(res.needs_confirmation)
        self.assertEqual(res.message, "X-ray detected")

    def test_colorful_image_rejected(self):
        res = phase1_classifier.classify(features(grayscale_ratio=0.1))
        self.assertFalse(res.accepted)
        self.assertEqual(res.confidence, 20)
        self.assertEqual(res.message, NOT_ANATOMY_MESSAGE)

    def test_flat_grayscale_without_anatomy_rejected(self):
        res = phase1_classifier.classify(features(
            grayscale_ratio=1.0, very_dark_ratio=0.0, dark_ratio=0.0, bright_ratio=0.0, contrast_ratio=0.05,
        ))
        self.assertFalse(res.accepted)
        self.assertEqual(res.confidence, 20)

    def test_mri_ct_pattern(self):
        # High contrast without the anatomy pattern, dark below the X-ray cut-off
        res = phase1_classifier.classify(features(
            grayscale_ratio=0.75, very_dark_ratio=0.1, dark_ratio=0.18, bright_ratio=0.1, contrast_ratio=0.2,
        ))
        self.assertEqual(res.type_label, ImageTypeLabel.MRI_OR_CT)
        self.assertEqual(res.confidence, 75)
        self.assertTrue(res.needs_confirmation)
        self.assertEqual(res.message, "MRI/CT Scan detected (low confidence anatomy detection)")

    def test_ultrasound_pattern(self):
        res = phase1_classifier.classify(features(
            grayscale_ratio=0.65, very_dark_ratio=0.3, dark_ratio=0.3, bright_ratio=0.05, contrast_ratio=0.05,
        ))
        self.assertEqual(res.type_label, ImageTypeLabel.ULTRASOUND)
        self.assertEqual(res.confidence, 65)
        self.assertTrue(res.needs_confirmation)

    def test_low_confidence_fallback(self):
        res = phase1_classifier.classify(features(
            grayscale_ratio=0.5, very_dark_ratio=0.0, dark_ratio=0.0, bright_ratio=0.0, contrast_ratio=0.0,
        ))
        self.assertTrue(res.accepted)
        self.assertEqual(res.type_label, ImageTypeLabel.UNKNOWN)
        self.assertEqual(res.confidence, 25)
        self.assertTrue(res.needs_confirmation)
        self.assertEqual(res.message, "Possible medical image detected - low confidence")

    def test_half_confidence_rounds_up(self):
        # 0.25 * 50 = 12.5
        res = phase1_classifier.classify(features(
            grayscale_ratio=0.25, very_dark_ratio=0.0, dark_ratio=0.0, bright_ratio=0.0, contrast_ratio=0.0,
        ))
        self.assertEqual(res.confidence, 13)

    def test_anatomy_detection(self):
        self.assertTrue(phase1_classifier.detects_human_anatomy(features()))
        # Bone share outside (0.02, 0.4)
        self.assertFalse(phase1_classifier.detects_human_anatomy(features(bright_ratio=0.5)))
        self.assertFalse(phase1_classifier.detects_human_anatomy(features(bright_ratio=0.01)))
        # Background too small
        self.assertFalse(phase1_classifier.detects_human_anatomy(features(very_dark_ratio=0.1)))
        # Combined contrast too weak
        self.assertFalse(phase1_classifier.detects_human_anatomy(features(very_dark_ratio=0.16, bright_ratio=0.1)))


if __name__ == '__main__':
    unittest.main()
