import unittest

from licitacoes.ui_strings import (
    ACTIVE_TENDER_STATUSES,
    ARCHIVED_TENDER_STATUS,
    DOCUMENT_DELETED_STATUS,
    LOST_TENDER_STATUS,
    MESSAGES,
    STATUS_GROUPS,
    STATUS_LABELS,
    WON_TENDER_STATUS,
    error_message,
    status_keys_for_group,
    success_message,
)


class UiStringsStatusGroupsTest(unittest.TestCase):
    def test_required_status_groups_exist(self) -> None:
        self.assertTrue({"licitacao", "documento"}.issubset(set(STATUS_GROUPS.keys())))

    def test_status_labels_and_descriptions_are_not_empty(self) -> None:
        for group_name, statuses in STATUS_GROUPS.items():
            for status in statuses:
                label = (status.get("label") or "").strip()
                description = (status.get("description") or "").strip()
                self.assertTrue(label, f"label vazio em {group_name}:{status.get('key')}")
                self.assertTrue(description, f"descricao vazia em {group_name}:{status.get('key')}")

    def test_statistics_statuses_are_known(self) -> None:
        tender_keys = set(status_keys_for_group("licitacao"))
        self.assertTrue(set(ACTIVE_TENDER_STATUSES).issubset(tender_keys))
        for key in (WON_TENDER_STATUS, LOST_TENDER_STATUS, ARCHIVED_TENDER_STATUS):
            self.assertIn(key, tender_keys)
            self.assertNotIn(key, ACTIVE_TENDER_STATUSES)
        self.assertIn(DOCUMENT_DELETED_STATUS, status_keys_for_group("documento"))
        self.assertEqual(STATUS_LABELS[WON_TENDER_STATUS], "Ganha")


class UiStringsMessagesTest(unittest.TestCase):
    def test_error_codes_have_messages(self) -> None:
        for key in (
            "auth_required",
            "token_expired",
            "session_expired",
            "required_fields_missing",
            "tender_not_found",
            "document_not_found",
            "transaction_failed",
            "unexpected_error",
        ):
            self.assertIn(key, MESSAGES["error"])
            self.assertEqual(error_message(key), MESSAGES["error"][key])

    def test_fallbacks(self) -> None:
        self.assertEqual(error_message("nao_existe", "padrao"), "padrao")
        self.assertEqual(success_message("nao_existe"), "nao_existe")


if __name__ == "__main__":
    unittest.main()
