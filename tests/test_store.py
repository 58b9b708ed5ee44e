"""
Test cases for the example store and its dataset serialization.
"""
import json
import unittest
import sys
from pathlib import Path

import numpy as np

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from signword.store import ExampleStore
from signword.errors import CorruptDatasetError, DimensionMismatchError


class TestExampleStore(unittest.TestCase):
    """Test adding, counting and clearing examples."""
    
    def setUp(self):
        self.store = ExampleStore()
    
    def test_add_example_increments_count(self):
        """Test that each add increases the label's count by exactly one."""
        for i in range(1, 4):
            self.store.add_example("hello", [float(i), 0.0, 1.0])
            self.assertEqual(self.store.count_for("hello"), i)
        self.assertEqual(len(self.store), 3)
    
    def test_dimensionality_adopted_from_first_example(self):
        """Test that the first vector fixes the dimensionality."""
        self.assertIsNone(self.store.dimensionality)
        self.store.add_example("hello", [0.0, 1.0, 2.0, 3.0])
        self.assertEqual(self.store.dimensionality, 4)
    
    def test_dimension_mismatch_leaves_store_unchanged(self):
        """Test that a wrong-length vector is rejected without side effects."""
        self.store.add_example("hello", [0.0, 1.0, 2.0])
        
        with self.assertRaises(DimensionMismatchError) as ctx:
            self.store.add_example("hello", [0.0, 1.0])
        
        self.assertEqual(ctx.exception.expected, 3)
        self.assertEqual(ctx.exception.actual, 2)
        self.assertEqual(self.store.count_for("hello"), 1)
        self.assertEqual(len(self.store), 1)
    
    def test_duplicate_vectors_are_kept(self):
        """Test that identical vectors are all stored."""
        for _ in range(3):
            self.store.add_example("yes", [1.0, 1.0])
        self.assertEqual(self.store.count_for("yes"), 3)
    
    def test_stored_vectors_are_read_only(self):
        """Test that vectors cannot be mutated after capture."""
        source = [1.0, 2.0]
        example = self.store.add_example("yes", source)
        source[0] = 99.0
        
        self.assertEqual(example.vector[0], 1.0)
        with self.assertRaises(ValueError):
            example.vector[0] = 5.0
    
    def test_rejects_malformed_vectors(self):
        """Test that empty, nested and non-finite vectors are refused."""
        with self.assertRaises(ValueError):
            self.store.add_example("x", [])
        with self.assertRaises(ValueError):
            self.store.add_example("x", [[1.0, 2.0], [3.0, 4.0]])
        with self.assertRaises(ValueError):
            self.store.add_example("x", [1.0, float("nan")])
        self.assertEqual(len(self.store), 0)
        self.assertIsNone(self.store.dimensionality)
    
    def test_clear_label(self):
        """Test that clearing removes only that label's examples."""
        self.store.add_example("hello", [0.0, 0.0])
        self.store.add_example("hello", [0.0, 1.0])
        self.store.add_example("bye", [1.0, 1.0])
        
        self.store.clear_label("hello")
        
        self.assertEqual(self.store.count_for("hello"), 0)
        self.assertEqual(self.store.count_for("bye"), 1)
        self.assertIn("hello", self.store)
        self.assertEqual(self.store.labels, ["bye", "hello"])
    
    def test_clear_unknown_label_is_noop(self):
        """Test that clearing an unknown label changes nothing."""
        self.store.add_example("hello", [0.0, 0.0])
        self.store.clear_label("missing")
        self.assertEqual(len(self.store), 1)
        self.assertNotIn("missing", self.store)
    
    def test_remove_label(self):
        """Test that removing drops the label and its examples."""
        self.store.add_example("hello", [0.0, 0.0])
        self.store.register_label("empty")
        
        self.store.remove_label("hello")
        self.store.remove_label("empty")
        
        self.assertEqual(self.store.labels, [])
        self.assertEqual(len(self.store), 0)
    
    def test_count_for_unknown_label(self):
        self.assertEqual(self.store.count_for("nobody"), 0)
    
    def test_labels_sorted(self):
        """Test that labels are returned sorted regardless of insertion order."""
        for label in ["zebra", "apple", "Mango"]:
            self.store.register_label(label)
        self.assertEqual(self.store.labels, ["Mango", "apple", "zebra"])


class TestDatasetRoundTrip(unittest.TestCase):
    """Test export/import of the full dataset."""
    
    def setUp(self):
        self.store = ExampleStore()
        self.store.add_example("hello", [0.1, 0.2, 0.3])
        self.store.add_example("thank you", [1.0 / 3.0, -2.5, 1e-12])
        self.store.add_example("hello", [0.4, 0.5, 0.6])
        self.store.register_label("untrained")
    
    def test_round_trip_into_fresh_store(self):
        """Test that export then import reproduces labels, counts and vectors."""
        restored = ExampleStore()
        restored.import_dataset(self.store.export_dataset())
        
        self.assertEqual(restored.labels, self.store.labels)
        self.assertEqual(restored.dimensionality, 3)
        for label in self.store.labels:
            self.assertEqual(restored.count_for(label), self.store.count_for(label))
            for original, copy in zip(self.store.vectors_for(label), restored.vectors_for(label)):
                np.testing.assert_allclose(copy, original, rtol=0, atol=1e-12)
    
    def test_blob_format(self):
        """Test the documented blob layout."""
        data = json.loads(self.store.export_dataset())
        
        self.assertEqual(data["version"], 1)
        self.assertEqual(data["dimensionality"], 3)
        self.assertEqual(len(data["labels"]["hello"]), 2)
        self.assertEqual(data["labels"]["untrained"], [])
    
    def test_import_replaces_contents(self):
        """Test that importing discards what the store held before."""
        other = ExampleStore()
        other.add_example("no", [9.0, 9.0])
        
        self.store.import_dataset(other.export_dataset())
        
        self.assertEqual(self.store.labels, ["no"])
        self.assertEqual(self.store.dimensionality, 2)
        self.assertEqual(self.store.count_for("hello"), 0)
    
    def test_empty_store_round_trip(self):
        """Test that an empty store survives export/import."""
        restored = ExampleStore()
        restored.import_dataset(ExampleStore().export_dataset())
        self.assertIsNone(restored.dimensionality)
        self.assertEqual(restored.labels, [])
    
    def test_import_accepts_bytes(self):
        restored = ExampleStore()
        restored.import_dataset(self.store.export_dataset().encode("utf-8"))
        self.assertEqual(restored.count_for("hello"), 2)
    
    def test_corrupt_blobs_rejected(self):
        """Test that malformed blobs raise and leave the store untouched."""
        corrupt_blobs = [
            "not json at all",
            json.dumps([1, 2, 3]),
            json.dumps({"version": 1, "dimensionality": 2, "labels": {"a": [[1.0, 2.0], [1.0]]}}),
            json.dumps({"version": 1, "dimensionality": None, "labels": {"a": [[1.0]]}}),
            json.dumps({"version": 99, "dimensionality": 1, "labels": {}}),
            json.dumps({"version": 1, "dimensionality": 1, "labels": {"a": [["x"]]}}),
            json.dumps({"version": 1, "dimensionality": 1, "labels": {"  ": [[1.0]]}}),
            '{"version": 1, "dimensionality": 2, "labels": {"a": [[NaN, 1.0]]}}',
            '{"version": 1, "dimensionality": 1, "labels": {"a": [[Infinity]]}}',
        ]
        
        for blob in corrupt_blobs:
            with self.subTest(blob=blob):
                with self.assertRaises(CorruptDatasetError):
                    self.store.import_dataset(blob)
                self.assertEqual(self.store.count_for("hello"), 2)
                self.assertEqual(self.store.dimensionality, 3)


if __name__ == '__main__':
    unittest.main()
