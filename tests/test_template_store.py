import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

import httpx

from app_config import AppConfig
from errors import TemplateError, TemplatePersistenceError
from template_store import (
    LocalTemplateStore,
    RemoteTemplateStore,
    TemplateSubscription,
    export_templates_json,
    merge_templates,
    normalize_templates,
    open_template_store,
    parse_templates_json,
    replace_templates,
)

SHEET = {"name": "sheet", "geometry": {"label_width": 40.0}, "style": {"font_size": 9.0}}


class NormalizeTests(unittest.TestCase):
    def test_current_shape_passes_through(self) -> None:
        self.assertEqual(normalize_templates({"sheet": SHEET}), {"sheet": SHEET})

    def test_legacy_flat_keys_are_mapped(self) -> None:
        legacy = {"Eski": {"labelWidth": 52, "numCols": 4, "fontSize": 12, "labelType": "spine"}}
        normalized = normalize_templates(legacy)["Eski"]
        self.assertEqual(normalized["geometry"], {"label_width": 52, "num_cols": 4})
        self.assertEqual(normalized["style"], {"font_size": 12, "label_mode": "spine"})

    def test_builtin_names_are_dropped(self) -> None:
        with self.assertLogs("template_store", level="WARNING"):
            normalized = normalize_templates({"system4": SHEET, "sheet": SHEET})
        self.assertEqual(list(normalized), ["sheet"])

    def test_invalid_shapes(self) -> None:
        with self.assertRaises(TemplateError):
            normalize_templates(["sheet"])
        with self.assertRaises(TemplateError):
            normalize_templates({"sheet": "not an object"})
        with self.assertRaises(TemplateError):
            parse_templates_json("{not json")


class MergePolicyTests(unittest.TestCase):
    def test_snapshot_replaces(self) -> None:
        current = {"a": SHEET, "b": SHEET}
        self.assertEqual(replace_templates(current, {"c": SHEET}), {"c": SHEET})

    def test_import_merges_and_incoming_wins(self) -> None:
        current = {"a": SHEET, "b": SHEET}
        newer = dict(SHEET, geometry={"label_width": 30.0})
        merged = merge_templates(current, {"b": newer, "c": SHEET})
        self.assertEqual(sorted(merged), ["a", "b", "c"])
        self.assertEqual(merged["b"]["geometry"], {"label_width": 30.0})

    def test_export_is_stable_json(self) -> None:
        text = export_templates_json({"b": SHEET, "a": SHEET})
        self.assertLess(text.index('"a"'), text.index('"b"'))
        self.assertEqual(parse_templates_json(text), {"a": SHEET, "b": SHEET})


class LocalStoreTests(unittest.TestCase):
    def test_missing_file_is_empty_library(self) -> None:
        with TemporaryDirectory() as tmp:
            self.assertEqual(LocalTemplateStore(Path(tmp) / "none.json").load(), {})

    def test_save_then_load(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "templates.json"
            store = LocalTemplateStore(path)
            store.save({"sheet": SHEET})
            self.assertEqual(store.load(), {"sheet": SHEET})
            self.assertFalse(path.with_suffix(".json.tmp").exists())

    def test_corrupt_file_is_a_persistence_error(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "templates.json"
            path.write_text("[]", encoding="utf-8")
            with self.assertRaises(TemplatePersistenceError):
                LocalTemplateStore(path).load()


class RemoteStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.documents: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if request.method == "GET":
                if request.url.path not in self.documents:
                    return httpx.Response(404)
                return httpx.Response(200, json=self.documents[request.url.path])
            if request.method == "PUT":
                self.documents[request.url.path] = json.loads(request.content)
                return httpx.Response(204)
            return httpx.Response(405)

        self.client = httpx.Client(
            base_url="https://templates.example",
            transport=httpx.MockTransport(handler),
        )
        self.store = RemoteTemplateStore(
            "https://templates.example",
            "token",
            "ayse",
            client=self.client,
        )

    def tearDown(self) -> None:
        self.store.close()

    def test_absent_document_is_empty(self) -> None:
        self.assertEqual(self.store.load(), {})
        self.assertEqual(self.requests[0].url.path, "/users/ayse/templates")

    def test_save_then_load(self) -> None:
        self.store.save({"sheet": SHEET})
        self.assertEqual(self.store.load(), {"sheet": SHEET})

    def test_server_error_is_a_persistence_error(self) -> None:
        failing = RemoteTemplateStore(
            "https://templates.example",
            "token",
            "ayse",
            client=httpx.Client(
                base_url="https://templates.example",
                transport=httpx.MockTransport(lambda request: httpx.Response(500, text="down")),
            ),
        )
        with self.assertRaises(TemplatePersistenceError) as ctx:
            failing.load()
        self.assertIn("500", str(ctx.exception))
        failing.close()

    def test_requires_owner_and_token(self) -> None:
        with self.assertRaises(RuntimeError):
            RemoteTemplateStore("https://templates.example", "", "ayse")

    def test_open_template_store_picks_backend(self) -> None:
        local = open_template_store(AppConfig(templates_file=Path("templates.json")))
        self.assertIsInstance(local, LocalTemplateStore)
        remote = open_template_store(
            AppConfig(remote_url="https://templates.example", remote_token="t", owner="ayse"),
            client=self.client,
        )
        self.assertIsInstance(remote, RemoteTemplateStore)


class SubscriptionTests(unittest.TestCase):
    def test_only_changes_are_queued(self) -> None:
        snapshots = [{"a": SHEET}, {"a": SHEET}, {"b": SHEET}]
        subscription = TemplateSubscription(lambda: snapshots.pop(0), interval=60)
        subscription.poll_once()
        subscription.poll_once()
        self.assertEqual(subscription.drain(), {"a": SHEET})
        self.assertIsNone(subscription.drain())
        subscription.poll_once()
        self.assertEqual(subscription.drain(), {"b": SHEET})

    def test_drain_returns_newest(self) -> None:
        snapshots = [{"a": SHEET}, {"b": SHEET}]
        subscription = TemplateSubscription(lambda: snapshots.pop(0), interval=60)
        subscription.poll_once()
        subscription.poll_once()
        self.assertEqual(subscription.drain(), {"b": SHEET})

    def test_failed_poll_is_logged(self) -> None:
        def fetch():
            raise TemplatePersistenceError("offline")

        subscription = TemplateSubscription(fetch, interval=60)
        with self.assertLogs("template_store", level="WARNING"):
            subscription.poll_once()
        self.assertIsNone(subscription.drain())


class AppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = AppConfig.from_env({})
        self.assertFalse(config.remote_enabled)
        self.assertEqual(config.encoding, "Windows-1254")
        self.assertEqual(config.poll_seconds, 15.0)

    def test_remote_settings(self) -> None:
        config = AppConfig.from_env({
            "LABEL_MAKER_REMOTE_URL": "https://templates.example/",
            "LABEL_MAKER_REMOTE_TOKEN": "t",
            "LABEL_MAKER_OWNER": "ayse",
            "LABEL_MAKER_POLL_SECONDS": "0.1",
        })
        self.assertTrue(config.remote_enabled)
        self.assertEqual(config.remote_url, "https://templates.example")
        self.assertEqual(config.poll_seconds, 1.0)

    def test_bad_poll_interval(self) -> None:
        with self.assertRaises(SystemExit):
            AppConfig.from_env({"LABEL_MAKER_POLL_SECONDS": "often"})


if __name__ == "__main__":
    unittest.main()
