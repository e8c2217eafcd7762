import random

import pytest

from common.codec import decode_bitmap, decode_holes
from sim.MemoryManager import MemoryManager
from sim.fit import BestFit, FirstFit, WorstFit

WORDSZ = 8


def make(fit=BestFit.fit, nwords=None):
    mm = MemoryManager(WORDSZ, fit, paranoia=1)
    if nwords is not None:
        mm.initialize(nwords)
    return mm


def offset(mm, eva):
    return (eva - mm.get_memory_start()) // WORDSZ


# Leave holes (0,10), (20,2), (30,6) in a 36-word pool
def fragmented(fit):
    mm = make(FirstFit.fit, 36)
    evas = [mm.allocate(n * WORDSZ) for n in (10, 10, 2, 8, 6)]
    for eva in evas[0::2]:
        mm.free(eva)
    assert mm.holes() == [(0, 10), (20, 2), (30, 6)]
    mm.set_allocator(fit)
    return mm


def test_initialize_seeds_one_hole():
    mm = make(nwords=10)
    assert mm.holes() == [(0, 10)]
    assert mm.partitions() == []
    assert mm.get_memory_limit() == 10 * WORDSZ
    assert mm.get_word_size() == WORDSZ
    assert list(decode_bitmap(mm.get_bitmap())) == [0] * 16


def test_initialize_clamps_word_count():
    mm = make(nwords=70000)
    assert mm.holes() == [(0, 65535)]
    assert mm.get_memory_limit() == 65535 * WORDSZ

    mm.initialize(-3)
    assert mm.get_list() is None
    assert mm.get_memory_limit() == 0


def test_zero_word_pool_behaves_uninitialized():
    mm = make(nwords=0)
    assert mm.holes() == []
    assert mm.get_list() is None
    assert mm.get_bitmap() is None
    assert mm.allocate(1) is None


def test_reinitialize_discards_state():
    mm = make(nwords=10)
    mm.allocate(3 * WORDSZ)
    mm.initialize(20)
    assert mm.holes() == [(0, 20)]
    assert mm.partitions() == []
    assert not decode_bitmap(mm.get_bitmap()).any()


def test_shutdown_is_idempotent():
    mm = make()
    mm.shutdown()
    mm.shutdown()
    mm.initialize(8)
    mm.allocate(WORDSZ)
    mm.shutdown()
    mm.shutdown()
    assert mm.holes() == []
    assert mm.partitions() == []
    assert mm.get_memory_limit() == 0


def test_uninitialized_exports_are_none():
    mm = make()
    assert mm.get_list() is None
    assert mm.get_bitmap() is None
    assert mm.get_memory_limit() == 0
    mm.initialize(4)
    mm.shutdown()
    assert mm.get_list() is None
    assert mm.get_bitmap() is None


def test_memory_start_requires_initialization():
    mm = make()
    with pytest.raises(AssertionError):
        mm.get_memory_start()
    mm.initialize(4)
    assert mm.get_memory_start() != 0


def test_sequential_best_fit_allocations():
    mm = make(nwords=10)
    a = mm.allocate(4 * WORDSZ)
    assert a == mm.get_memory_start()
    assert mm.partitions() == [(0, 4)]
    assert mm.holes() == [(4, 6)]

    b = mm.allocate(2 * WORDSZ)
    assert offset(mm, b) == 4
    assert mm.partitions() == [(0, 4), (4, 2)]
    assert mm.holes() == [(6, 4)]


def test_allocation_rounds_up_to_words():
    mm = make(nwords=10)
    mm.allocate(1)
    mm.allocate(WORDSZ + 1)
    assert mm.partitions() == [(0, 1), (1, 2)]


def test_allocate_rejects_bad_sizes():
    mm = make()
    assert mm.allocate(WORDSZ) is None
    mm.initialize(4)
    assert mm.allocate(0) is None
    assert mm.allocate(-8) is None
    assert mm.allocate(4 * WORDSZ + 1) is None
    assert mm.holes() == [(0, 4)]


def test_allocate_whole_pool():
    mm = make(nwords=4)
    assert mm.allocate(4 * WORDSZ) is not None
    assert mm.holes() == []
    assert mm.get_list() == b'\x00\x00'
    assert mm.allocate(1) is None


def test_no_fit_leaves_state_alone():
    mm = fragmented(BestFit.fit)
    before = (mm.holes(), mm.partitions(), mm.get_bitmap())
    assert mm.allocate(11 * WORDSZ) is None
    assert (mm.holes(), mm.partitions(), mm.get_bitmap()) == before


def test_best_fit_picks_smallest_hole():
    mm = fragmented(BestFit.fit)
    assert offset(mm, mm.allocate(5 * WORDSZ)) == 30
    assert offset(mm, mm.allocate(2 * WORDSZ)) == 20
    assert mm.holes() == [(0, 10), (35, 1)]


def test_worst_fit_picks_largest_hole():
    mm = fragmented(WorstFit.fit)
    assert offset(mm, mm.allocate(5 * WORDSZ)) == 0
    assert mm.holes() == [(5, 5), (20, 2), (30, 6)]
    assert offset(mm, mm.allocate(5 * WORDSZ)) == 30


def test_set_allocator_takes_effect():
    mm = fragmented(BestFit.fit)
    mm.set_allocator(FirstFit.fit)
    assert offset(mm, mm.allocate(2 * WORDSZ)) == 0


def test_allocator_sees_current_holes():
    seen = []

    def spy(nwords, holelist):
        seen.append((nwords, decode_holes(holelist)))
        return BestFit.fit(nwords, holelist)

    mm = make(spy, 10)
    mm.allocate(3 * WORDSZ)
    mm.allocate(1)
    assert seen == [(3, [(0, 10)]), (1, [(3, 7)])]


def test_allocator_contract_violation_raises():
    mm = make(lambda nwords, holelist: 3, 10)
    with pytest.raises(ValueError):
        mm.allocate(WORDSZ)
    assert mm.holes() == [(0, 10)]

    mm.set_allocator(lambda nwords, holelist: 0)
    mm.allocate(8 * WORDSZ)
    mm.set_allocator(lambda nwords, holelist: 8)
    with pytest.raises(ValueError):
        mm.allocate(3 * WORDSZ)


def test_free_coalesces_both_sides():
    mm = make(FirstFit.fit, 10)
    a, b, c = [mm.allocate(2 * WORDSZ) for _ in range(3)]
    mm.free(a)
    mm.free(c)
    assert mm.holes() == [(0, 2), (4, 6)]
    mm.free(b)
    assert mm.holes() == [(0, 10)]
    assert mm.partitions() == []


def test_free_coalesces_backward_only():
    mm = make(FirstFit.fit, 10)
    a, b, c = [mm.allocate(2 * WORDSZ) for _ in range(3)]
    mm.free(a)
    mm.free(b)
    assert mm.holes() == [(0, 4), (6, 4)]


def test_free_coalesces_forward_only():
    mm = make(FirstFit.fit, 6)
    a, b, c = [mm.allocate(2 * WORDSZ) for _ in range(3)]
    mm.free(c)
    mm.free(b)
    assert mm.holes() == [(2, 4)]


def test_round_trip_restores_holes():
    mm = fragmented(WorstFit.fit)
    before = mm.holes()
    eva = mm.allocate(3 * WORDSZ)
    mm.free(eva)
    assert mm.holes() == before


def test_double_free_is_noop():
    mm = make(nwords=10)
    eva = mm.allocate(3 * WORDSZ)
    mm.allocate(WORDSZ)
    mm.free(eva)
    after = (mm.holes(), mm.partitions(), mm.get_bitmap())
    mm.free(eva)
    assert (mm.holes(), mm.partitions(), mm.get_bitmap()) == after


def test_free_of_foreign_addresses_is_noop():
    mm = make(nwords=10)
    eva = mm.allocate(3 * WORDSZ)
    before = (mm.holes(), mm.partitions())
    for bogus in (None, 0, eva + 1, eva + WORDSZ, eva + 100 * WORDSZ):
        mm.free(bogus)
    assert (mm.holes(), mm.partitions()) == before

    make().free(eva)


def test_get_list_layout():
    mm = make(nwords=10)
    assert mm.get_list() == b'\x01\x00\x00\x00\x0a\x00'
    mm = fragmented(BestFit.fit)
    assert mm.get_list() == bytes([3, 0, 0, 0, 10, 0, 20, 0, 2, 0, 30, 0, 6, 0])


def test_get_bitmap_layout():
    mm = make(nwords=10)
    mm.allocate(3 * WORDSZ)
    assert mm.get_bitmap() == b'\x02\x00\x07\x00'

    mm = fragmented(BestFit.fit)
    # words 10-19 and 22-29 are in use
    assert mm.get_bitmap() == bytes([5, 0, 0x00, 0xfc, 0xcf, 0x3f, 0x00])


def test_exports_are_independent():
    mm = make(nwords=10)
    lst, bm = mm.get_list(), mm.get_bitmap()
    mm.allocate(3 * WORDSZ)
    assert lst == b'\x01\x00\x00\x00\x0a\x00'
    assert bm == b'\x02\x00\x00\x00'


def test_view_exposes_backing_bytes():
    mm = make(nwords=10)
    mm.allocate(WORDSZ)
    eva = mm.allocate(2 * WORDSZ)
    v = mm.view(eva)
    assert len(v) == 2 * WORDSZ
    v[:3] = b'abc'
    assert mm.view(eva)[:3].tobytes() == b'abc'
    assert mm.view(eva + WORDSZ) is None
    mm.free(eva)
    assert mm.view(eva) is None


def test_dump_memory_map(tmp_path):
    mm = fragmented(BestFit.fit)
    path = tmp_path / "map.txt"
    assert mm.dump_memory_map(str(path)) == 0
    assert path.read_text() == "[0, 10] - [20, 2] - [30, 6]"

    mm.initialize(5)
    assert mm.dump_memory_map(str(path)) == 0
    assert path.read_text() == "[0, 5]"


def test_dump_memory_map_without_holes(tmp_path):
    mm = make(nwords=4)
    mm.allocate(4 * WORDSZ)
    path = tmp_path / "full.txt"
    assert mm.dump_memory_map(str(path)) == 0
    assert path.read_text() == "[0, 0]"


def test_dump_memory_map_failures(tmp_path):
    mm = make()
    assert mm.dump_memory_map(str(tmp_path / "never.txt")) == -1
    assert not (tmp_path / "never.txt").exists()

    mm.initialize(4)
    assert mm.dump_memory_map(str(tmp_path / "missing" / "map.txt")) == -1


def test_events_published():
    class Recorder:
        def __init__(self):
            self.events = []

        def initialized(self, publ, nwords):
            self.events.append(('initialized', nwords))

        def allocd(self, publ, loc, sz):
            self.events.append(('allocd', loc, sz))

        def freed(self, publ, loc, sz):
            self.events.append(('freed', loc, sz))

        def shutdown(self, publ):
            self.events.append(('shutdown',))

    mm = make()
    rec = Recorder()
    mm.register_subscriber(rec)
    mm.initialize(10)
    eva = mm.allocate(3 * WORDSZ)
    mm.allocate(100 * WORDSZ)
    mm.free(eva)
    mm.free(eva)
    mm.shutdown()
    assert rec.events == [('initialized', 10), ('allocd', 0, 3),
                          ('freed', 0, 3), ('shutdown',)]


@pytest.mark.parametrize("fit", [BestFit.fit, WorstFit.fit, FirstFit.fit])
def test_random_operations_keep_invariants(fit):
    rng = random.Random(0x5eed)
    mm = make(fit, 200)
    live = []
    for _ in range(2000):
        if live and rng.random() < 0.45:
            mm.free(live.pop(rng.randrange(len(live))))
        else:
            eva = mm.allocate(rng.randint(1, 24 * WORDSZ))
            if eva is not None:
                live.append(eva)

        bits = decode_bitmap(mm.get_bitmap())
        used = set()
        for (b, sz) in mm.partitions():
            used.update(range(b, b + sz))
        assert [i for i in range(len(bits)) if bits[i]] == sorted(used)

    for eva in live:
        mm.free(eva)
    assert mm.holes() == [(0, 200)]
