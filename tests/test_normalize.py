import unittest

from ingest.transport import DecodeError
from normalize.models import Identifier, IssueUpdate, ValueField
from normalize.util import decode_issue, decode_time_entry, decode_user, unwrap


class TestDecoders(unittest.TestCase):
    def test_decode_minimal_issue(self):
        issue = decode_issue({'id': 1})
        self.assertEqual(issue.id, 1)
        self.assertEqual(issue.subject, '')
        self.assertIsNone(issue.status)
        self.assertEqual(issue.done_ratio, 0)
        self.assertEqual(issue.custom_fields, [])

    def test_multi_value_custom_field(self):
        issue = decode_issue({'id': 1, 'custom_fields': [{'id': 2, 'name': 'Tags', 'multiple': True, 'value': ['a', 'b']}, {'id': 3, 'name': 'Empty', 'value': None}]})
        self.assertEqual(issue.custom_fields[0].value, ['a', 'b'])
        self.assertEqual(issue.custom_fields[1].value, '')

    def test_record_without_id_is_rejected(self):
        with self.assertRaises(DecodeError):
            decode_user({'login': 'alice'})

    def test_unwrap_requires_object(self):
        with self.assertRaises(DecodeError):
            unwrap(b'[]', 'user')
        with self.assertRaises(DecodeError):
            unwrap(b'{"user": []}', 'user')
        with self.assertRaises(DecodeError):
            unwrap(b'{"issue": {"id": 1}}', 'user')

    def test_custom_field_entry_must_be_object(self):
        with self.assertRaises(DecodeError):
            decode_issue({'id': 1, 'custom_fields': ['Sprint']})

    def test_bad_numbers_raise_decode_error(self):
        for done_ratio in ('half', {'x': 1}, [10], True):
            with self.assertRaises(DecodeError):
                decode_issue({'id': 1, 'done_ratio': done_ratio})
        with self.assertRaises(DecodeError):
            decode_issue({'id': 1, 'estimated_hours': 'soon'})
        with self.assertRaises(DecodeError):
            decode_time_entry({'id': 1, 'hours': 'n/a'})

    def test_numeric_strings_and_nulls(self):
        issue = decode_issue({'id': 1, 'done_ratio': '40', 'estimated_hours': None})
        self.assertEqual(issue.done_ratio, 40)
        self.assertIsNone(issue.estimated_hours)
        self.assertEqual(decode_time_entry({'id': 2, 'hours': None}).hours, 0.0)

    def test_non_object_record(self):
        with self.assertRaises(DecodeError):
            decode_issue('not an issue')
        with self.assertRaises(DecodeError):
            decode_time_entry(['id', 1])

    def test_time_entry_to_dict_flattens_identifiers(self):
        entry = decode_time_entry({'id': 1, 'hours': '0.5', 'activity': {'id': 9, 'name': 'Dev'}})
        d = entry.to_dict()
        self.assertEqual(d['hours'], 0.5)
        self.assertEqual(d['activity'], {'id': 9, 'name': 'Dev'})
        self.assertIsNone(d['user'])


class TestIssueUpdate(unittest.TestCase):
    def test_empty_update_has_no_fields(self):
        self.assertEqual(IssueUpdate().to_payload(), {})
        self.assertEqual(len(IssueUpdate()), 0)

    def test_only_set_fields_present(self):
        update = IssueUpdate(subject='New title')
        self.assertEqual(update.to_payload(), {'subject': 'New title'})
        self.assertTrue(update.is_set('subject'))
        self.assertFalse(update.is_set('description'))

    def test_zero_and_empty_values_are_kept(self):
        update = IssueUpdate(done_ratio=0, description='', estimated_hours=None)
        self.assertEqual(update.to_payload(), {'done_ratio': 0, 'description': '', 'estimated_hours': None})

    def test_unset(self):
        update = IssueUpdate(subject='x', status_id=3).unset('subject')
        self.assertEqual(update.to_payload(), {'status_id': 3})

    def test_unknown_field(self):
        with self.assertRaises(TypeError):
            IssueUpdate(status=Identifier(1, 'New'))

    def test_custom_fields_payload(self):
        update = IssueUpdate(custom_fields=[ValueField(3, 'Sprint', '13'), {'id': 4, 'value': 'x'}])
        self.assertEqual(update.to_payload(), {'custom_fields': [{'id': 3, 'value': '13'}, {'id': 4, 'value': 'x'}]})
        with self.assertRaises(TypeError):
            IssueUpdate(custom_fields=['Sprint'])


if __name__ == '__main__':
    unittest.main()
