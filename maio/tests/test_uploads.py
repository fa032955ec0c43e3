import asyncio
import io
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi import UploadFile
from starlette.datastructures import Headers

from maio.uploads import UploadStore, generate_filename, media_type_for


class UploadStoreTests(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.store = UploadStore(self.directory)

    def tearDown(self):
        shutil.rmtree(self.directory, ignore_errors=True)

    def _save(self, field, filename, contents, content_type):
        upload = UploadFile(
            file=io.BytesIO(contents),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )
        return asyncio.run(self.store.save(field, upload))

    def test_generate_filename(self):
        self.assertRegex(generate_filename("image", "Photo.PNG"), r"^image-\d+-\d+\.PNG$")
        self.assertRegex(generate_filename("logo", "noext"), r"^logo-\d+-\d+$")
        self.assertRegex(generate_filename("file", None), r"^file-\d+-\d+$")

    def test_media_type_for(self):
        self.assertEqual(media_type_for("image/png"), "image")
        self.assertEqual(media_type_for("video/mp4"), "video")
        self.assertEqual(media_type_for("application/pdf"), "other")
        self.assertEqual(media_type_for(None), "other")

    def test_save_and_delete(self):
        stored = self._save("logo", "acme.svg", b"<svg/>", "image/svg+xml")
        path = Path(self.directory) / stored.filename
        self.assertEqual(path.read_bytes(), b"<svg/>")
        self.assertEqual(stored.url, f"/uploads/{stored.filename}")
        self.assertEqual(stored.original_name, "acme.svg")
        self.assertEqual(stored.size, 6)
        self.assertEqual(stored.content_type, "image/svg+xml")

        self.assertTrue(self.store.delete(stored.url))
        self.assertFalse(path.exists())
        self.assertFalse(self.store.delete(stored.url))

    def test_delete_ignores_foreign_references(self):
        outside = Path(self.directory).parent / "keep-me.txt"
        self.assertFalse(self.store.delete(None))
        self.assertFalse(self.store.delete(""))
        self.assertFalse(self.store.delete("https://cdn.example.com/logo.png"))
        self.assertFalse(self.store.delete("/uploads/../keep-me.txt"))
        self.assertFalse(self.store.delete(".."))
        self.assertIsNone(self.store.path_for(str(outside)))

    def test_delete_failure_is_not_raised(self):
        stored = self._save("image", "a.png", b"x", "image/png")
        with patch("pathlib.Path.unlink", side_effect=PermissionError("denied")):
            with self.assertLogs("maio.uploads", level="ERROR"):
                self.assertFalse(self.store.delete(stored.filename))
        self.assertTrue((Path(self.directory) / stored.filename).exists())


if __name__ == "__main__":
    unittest.main()
