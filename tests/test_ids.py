import threading

from api_codegen.ids import IdGenerator


class TestIdGenerator:
    def test_ids_increase_from_start(self):
        ids = IdGenerator(start=5)
        assert ids.next_id() == 5
        assert ids.next_id() == 6
        assert ids.peek() == 7

    def test_concurrent_callers_never_share_an_id(self):
        ids = IdGenerator()
        per_worker: list[list[int]] = []
        lock = threading.Lock()

        def worker():
            local = [ids.next_id() for _ in range(500)]
            with lock:
                per_worker.append(local)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        seen = [i for local in per_worker for i in local]
        assert len(seen) == 4000
        assert len(set(seen)) == 4000
        assert ids.peek() == 4001
        # each caller sees its own ids strictly increasing
        for local in per_worker:
            assert all(a < b for a, b in zip(local, local[1:]))
