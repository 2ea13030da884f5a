import unittest
from datetime import date
from decimal import Decimal

from licitacoes.domain.contracts import AssignedUserInput
from licitacoes.errors import ValidationError
from licitacoes.infrastructure.mappers.document_mapper import (
    document_input_from_payload,
    document_patch_to_row,
    row_to_document,
    tags_from_payload,
)
from licitacoes.infrastructure.mappers.formatting import format_date_br, format_money_br, parse_date, parse_money
from licitacoes.infrastructure.mappers.tender_mapper import (
    TENDER_COLUMNS,
    assigned_users_from_payload,
    missing_required_fields,
    row_to_tender,
    tender_input_to_row,
    tender_patch_to_row,
    tender_to_payload,
    tender_write_from_payload,
)


class FormattingTest(unittest.TestCase):
    def test_parse_date_formats(self) -> None:
        self.assertEqual(parse_date("2026-11-20"), date(2026, 11, 20))
        self.assertEqual(parse_date("2026-11-20T10:30:00+00:00"), date(2026, 11, 20))
        self.assertEqual(parse_date("20/11/2026"), date(2026, 11, 20))
        self.assertIsNone(parse_date(""))
        self.assertIsNone(parse_date("31/02/2026"))
        with self.assertLogs("licitacoes.infrastructure.mappers.formatting", level="WARNING"):
            self.assertIsNone(parse_date("amanha"))

    def test_parse_money(self) -> None:
        self.assertEqual(parse_money("R$ 1.234,56"), Decimal("1234.56"))
        self.assertEqual(parse_money("1234.56"), Decimal("1234.56"))
        self.assertEqual(parse_money(1500), Decimal("1500"))
        self.assertEqual(parse_money(0.1), Decimal("0.1"))
        self.assertIsNone(parse_money(None))
        self.assertIsNone(parse_money("  "))
        for invalid in ("abc", True, "NaN", "Infinity"):
            with self.assertRaises(ValueError):
                parse_money(invalid)

    def test_display_formats(self) -> None:
        self.assertEqual(format_money_br(Decimal("1234567.5")), "R$ 1.234.567,50")
        self.assertEqual(format_money_br(None), "R$ 0,00")
        self.assertEqual(format_date_br("2026-01-05"), "05/01/2026")
        self.assertEqual(format_date_br(None), "")


class TenderMapperTest(unittest.TestCase):
    def test_input_row_covers_every_column(self) -> None:
        row = tender_input_to_row(
            {
                "titulo": "  Pregao  ",
                "orgaoId": "org-1",
                "modalidade": "Pregao",
                "dataAbertura": "20/11/2026",
                "valorEstimado": "R$ 10.000,00",
                "posicaoKanban": "3",
            }
        )
        self.assertEqual(set(row), set(TENDER_COLUMNS) - {"status"})
        self.assertEqual(row["title"], "Pregao")
        self.assertEqual(row["opening_date"], "2026-11-20")
        self.assertEqual(row["estimated_value"], Decimal("10000.00"))
        self.assertEqual(row["kanban_position"], 3)
        self.assertIsNone(row["description"])

    def test_numeric_value_fallback(self) -> None:
        row = tender_input_to_row({"titulo": "T", "_valorEstimadoNumerico": 99.9})
        self.assertEqual(row["estimated_value"], Decimal("99.9"))

    def test_invalid_kanban_position(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            tender_input_to_row({"titulo": "T", "posicaoKanban": "topo"})
        self.assertEqual(ctx.exception.payload["field"], "posicaoKanban")

    def test_patch_row_keeps_only_present_keys(self) -> None:
        self.assertEqual(tender_patch_to_row({"objeto": "Novo", "prazo": None}), {"object": "Novo", "deadline_text": None})
        with self.assertRaises(ValidationError):
            tender_patch_to_row({"status": ""})

    def test_missing_required_fields(self) -> None:
        self.assertEqual(missing_required_fields({"titulo": " ", "modalidade": "Pregao"}), ["titulo", "orgaoId"])
        self.assertEqual(missing_required_fields({"titulo": "T", "orgaoId": "o", "modalidade": "m"}), [])

    def test_assigned_users(self) -> None:
        users = assigned_users_from_payload(["u1", {"id": "u2", "papel": "Gestor"}, "u1", {"papel": "Sem id"}, ""])
        self.assertEqual(users, (AssignedUserInput("u1"), AssignedUserInput("u2", "Gestor")))
        self.assertEqual(assigned_users_from_payload("u1"), ())

    def test_partial_write_leaves_missing_children_untouched(self) -> None:
        write = tender_write_from_payload({"titulo": "T"}, partial=True)
        self.assertIsNone(write.assigned_users)
        self.assertIsNone(write.documents)

        write = tender_write_from_payload({"documentos": [], "responsaveis": ["u1"]}, partial=True)
        self.assertEqual(write.documents, ())
        self.assertEqual(len(write.assigned_users), 1)

        full = tender_write_from_payload({"titulo": "T"})
        self.assertEqual(full.assigned_users, ())
        self.assertEqual(full.documents, ())

    def test_row_to_payload(self) -> None:
        tender = row_to_tender(
            {
                "id": "t1",
                "title": "Pregao",
                "status": "negociacao",
                "organization_name": "Prefeitura",
                "estimated_value": 1234.5,
                "opening_date": "2026-11-20",
                "profit_margin": "12.5",
                "kanban_position": None,
                "created_at": "2026-10-01T00:00:00+00:00",
                "updated_at": "2026-10-02T00:00:00+00:00",
            }
        )
        payload = tender_to_payload(tender)
        self.assertEqual(payload["orgao"], "Prefeitura")
        self.assertEqual(payload["responsavel"], "")
        self.assertEqual(payload["valorEstimado"], "R$ 1.234,50")
        self.assertEqual(payload["_valorEstimadoNumerico"], 1234.5)
        self.assertEqual(payload["margemLucro"], 12.5)
        self.assertEqual(payload["dataAbertura"], "20/11/2026")
        self.assertEqual(payload["posicaoKanban"], 0)
        self.assertEqual(payload["documentos"], [])
        self.assertIsNone(row_to_tender(None))


class DocumentMapperTest(unittest.TestCase):
    def test_tags_from_payload(self) -> None:
        self.assertEqual(tags_from_payload("a, b,,a"), ("a", "b"))
        self.assertEqual(tags_from_payload(["x", "y, z", None]), ("x", "y", "z"))
        self.assertEqual(tags_from_payload(None), ())

    def test_document_input_defaults_and_validation(self) -> None:
        document = document_input_from_payload({"nome": "Edital", "arquivoPath": "a/b.pdf"}, default_type="Outro")
        self.assertEqual(document.type, "Outro")
        self.assertEqual(document.status, "ativo")
        self.assertEqual(document.storage_path, "a/b.pdf")

        with self.assertRaises(ValidationError) as ctx:
            document_input_from_payload({"tipo": "Edital"})
        self.assertEqual(ctx.exception.code, "document_fields_missing")
        self.assertEqual(ctx.exception.payload["missing_fields"], ["nome"])

    def test_document_patch_row(self) -> None:
        self.assertEqual(document_patch_to_row({"descricao": None, "tamanho": "10"}), {"description": None, "size": 10})
        with self.assertRaises(ValidationError):
            document_patch_to_row({"nome": None})

    def test_row_to_document_sorts_tags(self) -> None:
        document = row_to_document({"id": "d1", "name": "Edital", "type": "Edital", "tag_names": "zeta,alfa"})
        self.assertEqual(document.tags, ["alfa", "zeta"])
        self.assertEqual(row_to_document({"id": "d2", "name": "X", "type": "Y"}).tags, [])


if __name__ == "__main__":
    unittest.main()
