"""
Tests for the individual client report and CSV exports.
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal

from mastergym.core.mappings import UiPaymentMethod
from mastergym.core.membership import DisplayStatus
from mastergym.core.reports import (
    build_client_report,
    clients_csv,
    measurements_csv,
    payments_csv,
    report_filename,
)
from conftest import make_client, make_measurement, make_payment

GENERATED_AT = datetime(2024, 3, 13, 18, 45)


def _rows(content: bytes) -> list[list[str]]:
    assert content.startswith(b"\xef\xbb\xbf")
    return list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))


class TestClientReport:

    def test_filename_strips_accents(self):
        assert report_filename(make_client(), date(2024, 3, 13)) == "reporte-Ana-Rodriguez-2024-03-13.txt"

    def test_sections_and_totals(self):
        client = make_client(emergency_contact="Luis 8777-0000", notes="Lesión en rodilla")
        payments = [
            make_payment(id=1, amount=Decimal("15000"), paid_on=date(2024, 1, 20)),
            make_payment(id=2, amount=Decimal("15000"), paid_on=date(2024, 2, 20), method=UiPaymentMethod.CASH),
        ]
        report = build_client_report(client, payments, [make_measurement()], GENERATED_AT)

        assert "REPORTE INDIVIDUAL - MASTERGYM" in report
        assert "Nombre: Ana Rodríguez" in report
        assert "Estado: POR-VENCER" in report
        assert "Fecha vencimiento: 20/03/2024" in report
        assert "CONTACTO DE EMERGENCIA\nLuis 8777-0000" in report
        assert "HISTORIAL DE PAGOS (2)" in report
        assert "Total pagado: ₡30 000" in report
        assert "HISTORIAL DE MEDICIONES (1)" in report
        assert "IMC: 22.9" in report
        assert "OBSERVACIONES\nLesión en rodilla" in report
        assert "Reporte generado el 13/03/2024 18:45" in report

    def test_payments_listed_newest_first(self):
        payments = [
            make_payment(id=1, paid_on=date(2024, 1, 5)),
            make_payment(id=2, paid_on=date(2024, 2, 7)),
        ]
        report = build_client_report(make_client(), payments, [], GENERATED_AT)
        assert report.index("07/02/2024") < report.index("05/01/2024")

    def test_client_without_membership(self):
        client = make_client(due_date=None, status=DisplayStatus.INACTIVE)
        report = build_client_report(client, [], [], GENERATED_AT)

        assert "Fecha vencimiento: Sin membresia" in report
        assert "Total pagado: ₡0" in report
        assert "CONTACTO DE EMERGENCIA" not in report
        assert "OBSERVACIONES" not in report


class TestCsvExports:

    def test_clients_csv(self):
        rows = _rows(clients_csv([make_client(), make_client(id=2, first_name="Carlos", due_date=None)]))

        assert rows[0][:3] == ["ID", "Nombre", "Apellido"]
        assert rows[1] == [
            "1", "Ana", "Rodríguez", "8888-1234", "ana@example.com",
            "por-vencer", "mensual", "2024-02-20", "2024-03-20",
        ]
        assert rows[2][-1] == ""

    def test_payments_csv_uses_client_names(self):
        payments = [make_payment(reference="SINPE-991"), make_payment(id=11, client_id=99)]
        rows = _rows(payments_csv(payments, {1: "Ana Rodríguez"}))

        assert rows[1] == ["10", "Ana Rodríguez", "15000.00", "2024-03-01", "mensual", "sinpe", "SINPE-991"]
        assert rows[2][1] == "99"

    def test_measurements_csv(self):
        rows = _rows(measurements_csv([make_measurement(grasaCorporal=18.5, notas="ayuno")], {1: "Ana Rodríguez"}))

        assert len(rows[0]) == 15
        assert rows[1][:6] == ["5", "Ana Rodríguez", "2024-03-05", "70.0", "175.0", "22.9"]
        assert rows[1][-2:] == ["18.5", "ayuno"]

    def test_commas_in_values_are_quoted(self):
        content = clients_csv([make_client(last_name="Pérez, Jr.")])
        assert b'"P\xc3\xa9rez, Jr."' in content
