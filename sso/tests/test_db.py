import unittest
from unittest.mock import MagicMock, patch

from bson import ObjectId
from pymongo import ReturnDocument

from sso.db import InMemoryUserStore, MongoUserStore, matches


class MatchesTests(unittest.TestCase):
    def test_none_matches_missing_and_null_fields(self):
        self.assertTrue(matches({"username": "a"}, {"encUserId": None}))
        self.assertTrue(matches({"encUserId": None}, {"encUserId": None}))
        self.assertFalse(matches({"encUserId": ObjectId()}, {"encUserId": None}))

    def test_ne_operator(self):
        self.assertFalse(matches({}, {"encUserId": {"$ne": None}}))
        self.assertTrue(matches({"encUserId": 1}, {"encUserId": {"$ne": None}}))
        self.assertTrue(matches({}, {"accountType": {"$ne": "temp"}}))
        self.assertFalse(
            matches({"accountType": "temp"}, {"accountType": {"$ne": "temp"}})
        )

    def test_in_operator(self):
        self.assertTrue(matches({"role": "a"}, {"role": {"$in": ["a", "b"]}}))
        self.assertFalse(matches({"role": "c"}, {"role": {"$in": ["a", "b"]}}))

    def test_regex_operator(self):
        pattern = {"$regex": r"^alice@example\.com$", "$options": "i"}
        self.assertTrue(matches({"email": "Alice@Example.com"}, {"email": pattern}))
        self.assertFalse(matches({"email": "malice@example.com"}, {"email": pattern}))
        self.assertFalse(matches({}, {"email": pattern}))
        self.assertFalse(
            matches({"email": "Alice@Example.com"}, {"email": {"$regex": "^alice"}})
        )

    def test_unknown_operator_raises(self):
        with self.assertRaises(ValueError):
            matches({"n": 1}, {"n": {"$gt": 0}})


class InMemoryUserStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryUserStore()

    def test_insert_assigns_object_id(self):
        user_id = self.store.insert_one({"username": "alice"})
        self.assertIsInstance(user_id, ObjectId)
        self.assertEqual(self.store.find_one({"_id": user_id})["username"], "alice")

    def test_find_returns_copies(self):
        self.store.insert_one({"username": "alice", "rooms": []})
        found = self.store.find_one({"username": "alice"})
        found["rooms"].append("room")
        self.assertEqual(self.store.find_one({"username": "alice"})["rooms"], [])

    def test_update_one_sets_fields_and_returns_updated(self):
        user_id = self.store.insert_one({"username": "alice"})
        updated = self.store.update_one({"_id": user_id}, {"email": "a@example.com"})
        self.assertEqual(updated["email"], "a@example.com")
        self.assertEqual(updated["username"], "alice")
        self.assertIsNone(self.store.update_one({"username": "nobody"}, {"x": 1}))

    def test_find_with_filter(self):
        self.store.insert_one({"username": "a", "accountType": "temp"})
        self.store.insert_one({"username": "b", "accountType": "participant"})
        self.store.insert_one({"username": "c"})
        found = self.store.find({"accountType": {"$ne": "temp"}})
        self.assertEqual([u["username"] for u in found], ["b", "c"])
        self.assertEqual(len(self.store.find()), 3)

    def test_reset(self):
        self.store.insert_one({"username": "a"})
        self.store.reset()
        self.assertEqual(self.store.find(), [])


class MongoUserStoreTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("sso.db.MongoClient")
        self.mock_client_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.collection = MagicMock()
        database = MagicMock()
        database.__getitem__.return_value = self.collection
        self.mock_client_cls.return_value.get_default_database.return_value = database
        self.store = MongoUserStore("mongodb://localhost:27017/mtlogin")
        database.__getitem__.assert_called_once_with("users")

    def test_find_defaults_to_empty_filter(self):
        self.collection.find.return_value = iter([{"username": "a"}])
        self.assertEqual(self.store.find(), [{"username": "a"}])
        self.collection.find.assert_called_once_with({})

    def test_insert_one_returns_inserted_id(self):
        inserted_id = ObjectId()
        self.collection.insert_one.return_value.inserted_id = inserted_id
        self.assertEqual(self.store.insert_one({"username": "a"}), inserted_id)

    def test_update_one_uses_set_and_returns_after(self):
        user_id = ObjectId()
        self.collection.find_one_and_update.return_value = {"_id": user_id, "x": 1}
        updated = self.store.update_one({"_id": user_id}, {"x": 1})
        self.assertEqual(updated["x"], 1)
        self.collection.find_one_and_update.assert_called_once_with(
            {"_id": user_id},
            {"$set": {"x": 1}},
            return_document=ReturnDocument.AFTER,
        )

    def test_close_closes_client(self):
        self.store.close()
        self.mock_client_cls.return_value.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
