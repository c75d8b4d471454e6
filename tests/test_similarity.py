import unittest

from dailybrief.embeddings.similarity import cosine_similarity, pairwise_similarity, similarity_to


class TestSimilarity(unittest.TestCase):
    def test_cosine(self):
        self.assertAlmostEqual(cosine_similarity([1, 0], [1, 0]), 1.0, places=5)
        self.assertAlmostEqual(cosine_similarity([1, 0], [0, 1]), 0.0, places=5)
        self.assertAlmostEqual(cosine_similarity([1, 1], [1, 0]), 0.7071, places=3)

    def test_zero_vector_scores_zero(self):
        self.assertEqual(cosine_similarity([0, 0], [1, 0]), 0.0)
        self.assertEqual(similarity_to([0, 0], [[1, 0]]), [0.0])

    def test_similarity_to_many(self):
        sims = similarity_to([1, 0], [[2, 0], [0, 3], [1, 1]])
        self.assertAlmostEqual(sims[0], 1.0, places=5)
        self.assertAlmostEqual(sims[1], 0.0, places=5)
        self.assertAlmostEqual(sims[2], 0.7071, places=3)
        self.assertEqual(similarity_to([1, 0], []), [])

    def test_pairwise_matrix(self):
        m = pairwise_similarity([[1, 0], [1, 0], [0, 1], [0, 0]])
        self.assertEqual(m.shape, (4, 4))
        self.assertAlmostEqual(float(m[0, 1]), 1.0, places=5)
        self.assertAlmostEqual(float(m[0, 2]), 0.0, places=5)
        self.assertEqual(float(m[3, 0]), 0.0)


if __name__ == "__main__":
    unittest.main()
