import json
import logging
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from genz_analytics.core import data_loader
from genz_analytics.core.data_loader import (
    DataLoaderError,
    load_all_data,
    load_dataset,
    read_raw_dataset,
    timed_load_all_data,
)
from genz_analytics.core.metadata_loader import (
    MetadataError,
    boundary_names_from_geojson,
    load_boundary_names,
    load_question_labels,
)

SURVEY_CSV = (
    "Gender,Province of Origin,Last Education,Year of Birth,Saya paham inflasi,Saya mencatat pengeluaran\n"
    "F,DKI Jakarta,SMA,2003,4,3\n"
    ",,,,,\n"
    "M,Jawa Barat,S1,2001,2,1\n"
)

PROFILE_CSV = (
    "user_id,province,avg_monthly_income,avg_monthly_expense,outstanding_loan,financial_anxiety_score\n"
    "U1,Jakarta,Rp2.000.001 - Rp4.000.000,< Rp2.000.000,500000,3\n"
)

REGIONAL_CSV = (
    "Provinsi,Jumlah Penduduk (Ribu),PDRB (Ribu Rp),Outstanding Pinjaman (Rp miliar),Urbanisasi (%)\n"
    "DKI Jakarta,10679.9,322620,15000.5,100\n"
    "Jawa Barat,49935.7,52000,12000,78.7\n"
)


def setUpModule():
    logging.disable(logging.CRITICAL)


def tearDownModule():
    logging.disable(logging.NOTSET)


class DataDirTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)
        (self.data_dir / "GenZ_Financial_Literacy_Survey_CLEAN.csv").write_text(SURVEY_CSV, encoding="utf-8")
        (self.data_dir / "GenZ_Financial_Profile_CLEAN.csv").write_text(PROFILE_CSV, encoding="utf-8")
        (self.data_dir / "Regional_Economic_Indicators_CLEAN.csv").write_text(REGIONAL_CSV, encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()


class TestLocalLoading(DataDirTestCase):
    def test_load_all_data(self):
        snapshot = load_all_data(data_dir=self.data_dir, base_url="")
        self.assertEqual(len(snapshot.survey), 2)
        self.assertEqual(len(snapshot.profiles), 1)
        self.assertEqual(len(snapshot.regional), 2)

        first = snapshot.survey[0]
        self.assertEqual(first.province, "DKI Jakarta")
        self.assertEqual(first.answers[:3], (4.0, 3.0, 0.0))
        self.assertEqual(snapshot.profiles[0].avg_monthly_expense, "< Rp2.000.000")
        self.assertEqual(snapshot.regional[1].urbanization_percent, 78.7)

    def test_timed_variant(self):
        snapshot, elapsed = timed_load_all_data(data_dir=self.data_dir, base_url="")
        self.assertEqual(len(snapshot.regional), 2)
        self.assertGreaterEqual(elapsed, 0.0)

    def test_load_dataset_dispatches_on_name(self):
        regional = load_dataset("Regional_Economic_Indicators_CLEAN.csv", data_dir=self.data_dir, base_url="")
        self.assertEqual(regional[0].province, "DKI Jakarta")

    def test_unknown_dataset_name(self):
        with self.assertRaises(DataLoaderError):
            load_dataset("other.csv", data_dir=self.data_dir, base_url="")

    def test_missing_file(self):
        with self.assertRaises(DataLoaderError):
            read_raw_dataset("nope.csv", data_dir=self.data_dir, base_url="")

    def test_empty_file(self):
        (self.data_dir / "empty.csv").write_text("", encoding="utf-8")
        df = read_raw_dataset("empty.csv", data_dir=self.data_dir, base_url="")
        self.assertTrue(df.empty)

    def test_file_name_overrides(self):
        (self.data_dir / "Regional_2024.csv").write_text(REGIONAL_CSV.splitlines()[0] + "\nBali,4300,60000,10,66\n")
        snapshot = load_all_data(data_dir=self.data_dir, base_url="", file_names={"regional": "Regional_2024.csv"})
        self.assertEqual([r.province for r in snapshot.regional], ["Bali"])


class TestRemoteLoading(unittest.TestCase):
    def _session(self, status_code=200, text=""):
        resp = mock.Mock(status_code=status_code, text=text, encoding="utf-8")
        session = mock.Mock()
        session.get.return_value = resp
        return session

    def test_fetch_from_base_url(self):
        session = self._session(text=REGIONAL_CSV)
        with mock.patch.object(data_loader, "_get_session", return_value=session):
            rows = load_dataset("Regional_Economic_Indicators_CLEAN.csv", base_url="https://example.org/data/")
        self.assertEqual(len(rows), 2)
        url = session.get.call_args[0][0]
        self.assertEqual(url, "https://example.org/data/Regional_Economic_Indicators_CLEAN.csv")

    def test_http_status_error(self):
        session = self._session(status_code=404, text="not found")
        with mock.patch.object(data_loader, "_get_session", return_value=session):
            with self.assertRaises(DataLoaderError) as ctx:
                read_raw_dataset("x.csv", base_url="https://example.org")
        self.assertIn("404", str(ctx.exception))

    def test_transport_error_is_wrapped(self):
        session = mock.Mock()
        session.get.side_effect = ConnectionError("boom")
        with mock.patch.object(data_loader, "_get_session", return_value=session):
            with self.assertRaises(DataLoaderError):
                read_raw_dataset("x.csv", base_url="https://example.org")


class TestMetadata(DataDirTestCase):
    def test_boundary_names_property_detection(self):
        data = {
            "type": "FeatureCollection",
            "features": [
                {"properties": {"Propinsi": "DKI JAKARTA", "kode": 31}},
                {"properties": {"Propinsi": "JAWA BARAT"}},
                {"properties": {"Propinsi": "DKI JAKARTA"}},
                {"properties": {}},
            ],
        }
        self.assertEqual(boundary_names_from_geojson(data), ["DKI JAKARTA", "JAWA BARAT"])

        data = {"features": [{"properties": {"name": "Bali"}}]}
        self.assertEqual(boundary_names_from_geojson(data), ["Bali"])
        self.assertEqual(boundary_names_from_geojson({"features": [{"properties": {"x": 1}}]}), [])

        with self.assertRaises(MetadataError):
            boundary_names_from_geojson({"type": "Feature"})

    def test_load_boundary_names_from_file(self):
        path = self.data_dir / "provinces.json"
        path.write_text(json.dumps({"features": [{"properties": {"Nama": "Aceh"}}]}), encoding="utf-8")
        self.assertEqual(load_boundary_names(path), ["Aceh"])
        self.assertEqual(load_boundary_names(self.data_dir / "missing.json"), [])

        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(MetadataError):
            load_boundary_names(path)

    def test_question_labels(self):
        labels = load_question_labels(self.data_dir / "GenZ_Financial_Literacy_Survey_CLEAN.csv")
        self.assertEqual(labels, {"Q1": "Saya paham inflasi", "Q2": "Saya mencatat pengeluaran"})
        self.assertEqual(load_question_labels(self.data_dir / "missing.csv"), {})


if __name__ == "__main__":
    unittest.main()
