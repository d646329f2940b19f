from __future__ import annotations

import threading
import time
import unittest

from docexport.core.errors import UploadError, UploadStateError
from docexport.export.multipart import MultipartUploadCoordinator, SessionState
from docexport.export.planner import PartSpec


class RecordingStore:
    def __init__(self, *, fail_part=None, fail_complete=False, fail_abort=False, fail_initiate=False, delays=None):
        self.fail_part = fail_part
        self.fail_complete = fail_complete
        self.fail_abort = fail_abort
        self.fail_initiate = fail_initiate
        self.delays = delays or {}
        self.calls = []
        self.part_numbers = []
        self.completed = None
        self.aborted = []
        self.initiate_kwargs = None
        self._lock = threading.Lock()

    def initiate(self, key, *, content_type, content_encoding=None, metadata=None):
        self.calls.append("initiate")
        if self.fail_initiate:
            raise UploadError("create failed")
        self.initiate_kwargs = {"key": key, "content_type": content_type, "content_encoding": content_encoding, "metadata": metadata}
        return "upload-123"

    def upload_part(self, upload_id, key, part_number, data):
        time.sleep(self.delays.get(part_number, 0))
        with self._lock:
            self.calls.append("upload_part")
            self.part_numbers.append(part_number)
        if part_number == self.fail_part:
            raise UploadError(f"part {part_number} failed", part_number=part_number)
        return f'"etag-{part_number}-{len(data)}"'

    def complete(self, upload_id, key, parts):
        self.calls.append("complete")
        if self.fail_complete:
            raise UploadError("complete failed")
        self.completed = (upload_id, key, list(parts))

    def abort(self, upload_id, key):
        self.calls.append("abort")
        self.aborted.append((upload_id, key))
        if self.fail_abort:
            raise RuntimeError("abort failed")

    def uri(self, key):
        return f"mem://{key}"


def _payload(total: int) -> bytes:
    return (b"0123456789abcdef" * (total // 16 + 1))[:total]


def _specs(count: int, size: int) -> list[PartSpec]:
    # The coordinator does not enforce part-size limits; small parts keep tests light.
    return [PartSpec(i + 1, i * size, size) for i in range(count)]


class TestMultipartUploadCoordinator(unittest.TestCase):
    def test_parts_are_numbered_and_completed_in_order(self) -> None:
        payload = _payload(40)
        specs = _specs(4, 10)
        store = RecordingStore()
        coord = MultipartUploadCoordinator(store, "exports/a.json")
        parts = coord.run(specs, payload, compressed=True, metadata={"uploadType": "multipart"})

        self.assertEqual(store.part_numbers, [1, 2, 3, 4])
        self.assertEqual(store.calls[0], "initiate")
        self.assertEqual(store.calls[-1], "complete")
        self.assertNotIn("abort", store.calls)
        self.assertEqual(store.initiate_kwargs["content_type"], "application/json")
        self.assertEqual(store.initiate_kwargs["content_encoding"], "gzip")
        self.assertEqual(store.initiate_kwargs["metadata"], {"uploadType": "multipart"})
        upload_id, key, completed = store.completed
        self.assertEqual((upload_id, key), ("upload-123", "exports/a.json"))
        self.assertEqual([p.part_number for p in completed], [p.part_number for p in parts])
        self.assertEqual(coord.state, SessionState.COMPLETED)

    def test_no_content_encoding_without_compression(self) -> None:
        store = RecordingStore()
        coord = MultipartUploadCoordinator(store, "k")
        coord.initiate(compressed=False)
        self.assertIsNone(store.initiate_kwargs["content_encoding"])
        self.assertIsNone(store.initiate_kwargs["metadata"])

    def test_part_failure_aborts_once_and_never_completes(self) -> None:
        payload = _payload(30)
        store = RecordingStore(fail_part=2)
        coord = MultipartUploadCoordinator(store, "k")
        with self.assertRaises(UploadError) as ctx:
            coord.run(_specs(3, 10), payload)
        self.assertEqual(store.part_numbers, [1, 2])
        self.assertEqual(ctx.exception.part_number, 2)
        self.assertEqual(store.aborted, [("upload-123", "k")])
        self.assertNotIn("complete", store.calls)
        self.assertEqual(coord.state, SessionState.ABORTED)
        # A second abort is a no-op.
        self.assertFalse(coord.abort())
        self.assertEqual(len(store.aborted), 1)

    def test_complete_failure_aborts(self) -> None:
        payload = _payload(20)
        store = RecordingStore(fail_complete=True)
        coord = MultipartUploadCoordinator(store, "k")
        with self.assertRaises(UploadError):
            coord.run(_specs(2, 10), payload)
        self.assertEqual(store.aborted, [("upload-123", "k")])

    def test_abort_failure_does_not_mask_original_error(self) -> None:
        payload = _payload(20)
        store = RecordingStore(fail_part=1, fail_abort=True)
        coord = MultipartUploadCoordinator(store, "k")
        with self.assertLogs("docexport.export.multipart", level="ERROR") as logs:
            with self.assertRaises(UploadError) as ctx:
                coord.run(_specs(2, 10), payload)
        self.assertIn("part 1 failed", str(ctx.exception))
        self.assertTrue(any("Failed to abort" in line for line in logs.output))

    def test_initiate_failure_has_nothing_to_abort(self) -> None:
        store = RecordingStore(fail_initiate=True)
        coord = MultipartUploadCoordinator(store, "k")
        with self.assertRaises(UploadError):
            coord.run([PartSpec(1, 0, 1)], b"x")
        self.assertEqual(store.calls, ["initiate"])
        self.assertFalse(coord.abort())

    def test_out_of_order_operations_rejected(self) -> None:
        store = RecordingStore()
        coord = MultipartUploadCoordinator(store, "k")
        with self.assertRaises(UploadStateError):
            coord.upload_part(PartSpec(1, 0, 1), b"x")
        with self.assertRaises(UploadStateError):
            coord.complete()
        coord.initiate()
        with self.assertRaises(UploadStateError):
            coord.upload_part(PartSpec(2, 0, 1), b"x")
        with self.assertRaises(UploadStateError):
            coord.initiate()

    def test_part_length_mismatch_rejected(self) -> None:
        coord = MultipartUploadCoordinator(RecordingStore(), "k")
        coord.initiate()
        with self.assertRaises(UploadError):
            coord.upload_part(PartSpec(1, 0, 10), b"short")

    def test_concurrent_uploads_complete_sorted(self) -> None:
        payload = _payload(60)
        specs = _specs(6, 10)
        # Earlier parts finish last.
        delays = {s.part_number: 0.05 * (len(specs) - s.part_number) for s in specs}
        store = RecordingStore(delays=delays)
        coord = MultipartUploadCoordinator(store, "k", max_workers=4)
        coord.run(specs, payload)
        _, _, completed = store.completed
        self.assertEqual([p.part_number for p in completed], [1, 2, 3, 4, 5, 6])
        self.assertEqual(sorted(store.part_numbers), [1, 2, 3, 4, 5, 6])
        self.assertNotEqual(store.part_numbers, [1, 2, 3, 4, 5, 6])

    def test_concurrent_failure_aborts(self) -> None:
        payload = _payload(60)
        store = RecordingStore(fail_part=3)
        coord = MultipartUploadCoordinator(store, "k", max_workers=3)
        with self.assertRaises(UploadError):
            coord.run(_specs(6, 10), payload)
        self.assertEqual(store.aborted, [("upload-123", "k")])
        self.assertIsNone(store.completed)

    def test_concurrent_uploads_slice_only_in_flight_parts(self) -> None:
        class CountingPayload(bytes):
            slices = 0

            def __getitem__(self, item):
                if isinstance(item, slice):
                    type(self).slices += 1
                return bytes.__getitem__(self, item)

        class BarrierStore(RecordingStore):
            def __init__(self) -> None:
                super().__init__()
                self.barrier = threading.Barrier(2, timeout=5)
                self.seen = []

            def upload_part(self, upload_id, key, part_number, data):
                if part_number <= 2:
                    self.barrier.wait()
                    self.seen.append(CountingPayload.slices)
                return super().upload_part(upload_id, key, part_number, data)

        payload = CountingPayload(_payload(60))
        store = BarrierStore()
        coord = MultipartUploadCoordinator(store, "k", max_workers=2)
        coord.run(_specs(6, 10), payload)
        # With two workers parked on the barrier only their two parts exist as copies.
        self.assertEqual(store.seen, [2, 2])
        self.assertEqual(CountingPayload.slices, 6)
        self.assertEqual([p.part_number for p in store.completed[2]], [1, 2, 3, 4, 5, 6])

    def test_run_without_parts_rejected_before_initiate(self) -> None:
        store = RecordingStore()
        coord = MultipartUploadCoordinator(store, "k")
        with self.assertRaises(UploadStateError):
            coord.run([], b"")
        self.assertEqual(store.calls, [])
        self.assertEqual(coord.state, SessionState.UNINITIALIZED)
        self.assertEqual(store.aborted, [])


if __name__ == "__main__":
    unittest.main()
