"""Unit tests for the name similarity pre-filter."""

import unittest

from app.duplicates.similarity import name_similarity, normalize_name, token_set_similarity


class NameSimilarityTests(unittest.TestCase):
    def test_equal_after_normalization_scores_one(self) -> None:
        self.assertEqual(name_similarity("  Aba ", "aba"), 1.0)
        self.assertEqual(name_similarity("Girl  and the Goat", "girl and the goat"), 1.0)

    def test_containment_scores_point_nine(self) -> None:
        self.assertEqual(name_similarity("Aba", "Aba Chicago"), 0.9)
        self.assertEqual(name_similarity("Bavette's Bar & Boeuf", "Bavette's"), 0.9)

    def test_empty_side_scores_zero(self) -> None:
        self.assertEqual(name_similarity("", "Aba"), 0.0)
        self.assertEqual(name_similarity("   ", "Aba"), 0.0)

    def test_word_overlap_fallback(self) -> None:
        # shared {gordon}, distinct {gordon, ramsey, ramsay}
        self.assertAlmostEqual(name_similarity("Gordon Ramsey", "Gordon Ramsay"), 1 / 3)
        self.assertAlmostEqual(name_similarity("Stephanie Izard", "Izard Stephanie"), 1.0)
        self.assertEqual(name_similarity("Monteverde", "Galit"), 0.0)

    def test_symmetric_and_bounded(self) -> None:
        pairs = [
            ("Kwame Onwuachi", "Kwame Onwuachi Jr"),
            ("The Purple Pig", "Purple Pig Chicago"),
            ("Nobu", "Matsuhisa"),
        ]
        for left, right in pairs:
            score = name_similarity(left, right)
            self.assertEqual(score, name_similarity(right, left))
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    def test_helpers(self) -> None:
        self.assertEqual(normalize_name("  Top   Chef  "), "top chef")
        self.assertEqual(token_set_similarity("", "anything"), 0.0)
        self.assertAlmostEqual(token_set_similarity("the purple pig", "purple pig chicago"), 2 / 4)


if __name__ == "__main__":
    unittest.main()
