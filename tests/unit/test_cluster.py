import random
import unittest

import pytest

from umiconsensus.cluster import ClusterBuilder, DuplicateCluster, MateRecord, MateTable
from umiconsensus.constants import CONFIDENCE, MATE_ROLE
from umiconsensus.error import StorageError

from ..util import mock_read


def group_of(*reads):
    return (reads[0].key(), list(reads))


def find_unmatched(reads, **kwargs):
    with MateTable(**kwargs) as mates:
        for read in reads:
            mates.add(read)
        return [(r.identifier, r.mate) for r in mates.unmatched_mates()]


def unmatched_of(*reads):
    return [MateRecord(read.key(), read.identifier, read.mate) for read in reads]


class TestMateTable:
    def test_unpaired_ignored(self, tmp_path):
        with MateTable(temp_dir=str(tmp_path)) as mates:
            mates.add(mock_read())
            assert len(mates) == 0
            assert list(mates.unmatched_mates()) == []

    def test_both_mates(self, tmp_path):
        reads = [
            mock_read(identifier='frag', mate=MATE_ROLE.FIRST),
            mock_read(identifier='frag', mate=MATE_ROLE.SECOND, position=300),
        ]
        assert find_unmatched(reads, temp_dir=str(tmp_path)) == []

    def test_mates_require_same_barcode(self, tmp_path):
        reads = [
            mock_read(identifier='frag', mate=MATE_ROLE.FIRST, barcode='AA'),
            mock_read(identifier='frag', mate=MATE_ROLE.SECOND, barcode='AC'),
        ]
        assert find_unmatched(reads, temp_dir=str(tmp_path)) == [('frag', 'first'), ('frag', 'second')]

    def test_same_role_twice_is_not_a_pair(self, tmp_path):
        reads = [
            mock_read(identifier='frag', mate=MATE_ROLE.FIRST, position=10),
            mock_read(identifier='frag', mate=MATE_ROLE.FIRST),
        ]
        assert find_unmatched(reads, temp_dir=str(tmp_path)) == [('frag', 'first'), ('frag', 'first')]

    def test_unmatched_in_group_order(self, tmp_path):
        reads = [
            mock_read(identifier='b', mate=MATE_ROLE.FIRST, position=5),
            mock_read(identifier='a', mate=MATE_ROLE.SECOND, position=9),
            mock_read(identifier='c', mate=MATE_ROLE.FIRST, position=5),
        ]
        assert find_unmatched(reads, temp_dir=str(tmp_path)) == [('b', 'first'), ('c', 'first'), ('a', 'second')]

    def test_spilled_matches_in_memory(self, tmp_path):
        rng = random.Random(7)
        reads = []
        for i in range(300):
            roles = rng.choice([[MATE_ROLE.FIRST], [MATE_ROLE.SECOND], [MATE_ROLE.FIRST, MATE_ROLE.SECOND]])
            for role in roles:
                reads.append(mock_read(
                    identifier='t{}'.format(i), mate=role, position=rng.randint(0, 20), barcode=rng.choice(['AA', 'CG'])))
        rng.shuffle(reads)
        expected = find_unmatched(reads, temp_dir=str(tmp_path))
        assert expected
        assert find_unmatched(reads, buffer_size=1, merge_fan_in=2, temp_dir=str(tmp_path)) == expected
        assert len(expected) == len(set(expected))

    def test_temporary_storage_removed(self, tmp_path):
        with MateTable(buffer_size=1, temp_dir=str(tmp_path)) as mates:
            for i in range(5):
                mates.add(mock_read(identifier='r{}'.format(i), mate=MATE_ROLE.FIRST))
            assert len(mates) == 5
        assert list(tmp_path.iterdir()) == []

    def test_unmatched_only_once(self, tmp_path):
        with MateTable(temp_dir=str(tmp_path)) as mates:
            mates.unmatched_mates()
            with pytest.raises(StorageError):
                mates.unmatched_mates()

    def test_missing_temp_dir(self, tmp_path):
        with pytest.raises(StorageError):
            with MateTable(temp_dir=str(tmp_path / 'missing')):
                pass


class TestClusterBuilder(unittest.TestCase):

    def test_single_read_group(self):
        read = mock_read()
        clusters = list(ClusterBuilder().build([group_of(read)]))
        self.assertEqual(1, len(clusters))
        self.assertEqual(CONFIDENCE.SINGLETON, clusters[0].confidence)
        self.assertEqual(0, clusters[0].ordinal)
        self.assertEqual((read, ), clusters[0].reads)

    def test_full_cluster(self):
        reads = [mock_read(identifier='r{}'.format(i)) for i in range(3)]
        clusters = list(ClusterBuilder().build([group_of(*reads)]))
        self.assertEqual(1, len(clusters))
        self.assertEqual(CONFIDENCE.FULL, clusters[0].confidence)
        self.assertEqual(3, len(clusters[0]))
        self.assertIsInstance(clusters[0].reads, tuple)

    def test_unmatched_mates_split(self):
        reads = [
            mock_read(identifier='paired', mate=MATE_ROLE.FIRST),
            mock_read(identifier='orphan-b', mate=MATE_ROLE.SECOND),
            mock_read(identifier='single'),
            mock_read(identifier='orphan-a', mate=MATE_ROLE.FIRST),
        ]
        builder = ClusterBuilder()
        clusters = list(builder.build([group_of(*reads)], unmatched_of(reads[3], reads[1])))
        self.assertEqual([0, 1, 2], [c.ordinal for c in clusters])
        self.assertEqual(['paired', 'single'], clusters[0].read_ids())
        self.assertEqual(CONFIDENCE.FULL, clusters[0].confidence)
        self.assertEqual(['orphan-a'], clusters[1].read_ids())
        self.assertEqual(['orphan-b'], clusters[2].read_ids())
        self.assertEqual(CONFIDENCE.DEGRADED, clusters[1].confidence)
        self.assertEqual(CONFIDENCE.DEGRADED, clusters[2].confidence)
        self.assertEqual(2, builder.unmatched)
        self.assertEqual(3, builder.clusters)

    def test_only_unmatched_mates(self):
        read = mock_read(identifier='orphan', mate=MATE_ROLE.FIRST)
        clusters = list(ClusterBuilder().build([group_of(read)], unmatched_of(read)))
        self.assertEqual(1, len(clusters))
        self.assertEqual(1, clusters[0].ordinal)
        self.assertEqual(CONFIDENCE.DEGRADED, clusters[0].confidence)

    def test_unmatched_mates_joined_to_their_group(self):
        first = mock_read(identifier='orphan', mate=MATE_ROLE.FIRST, position=1)
        second = mock_read(identifier='orphan', mate=MATE_ROLE.SECOND, position=3)
        other = mock_read(identifier='orphan', mate=MATE_ROLE.FIRST, position=2)
        groups = [group_of(first), group_of(other), group_of(second)]
        clusters = list(ClusterBuilder().build(groups, unmatched_of(first, second)))
        self.assertEqual([(1, 1), (2, 0), (3, 1)], [(c.key.position, c.ordinal) for c in clusters])

    def test_no_pairing_without_unmatched_mates(self):
        read = mock_read(identifier='orphan', mate=MATE_ROLE.FIRST)
        clusters = list(ClusterBuilder().build([group_of(read)]))
        self.assertEqual(0, clusters[0].ordinal)
        self.assertEqual(CONFIDENCE.SINGLETON, clusters[0].confidence)

    def test_min_support_drops_small_clusters(self):
        small = mock_read(identifier='small', barcode='AA')
        large = [mock_read(identifier='large{}'.format(i), barcode='CC') for i in range(2)]
        builder = ClusterBuilder(min_support=2)
        clusters = list(builder.build([group_of(small), group_of(*large)]))
        self.assertEqual(1, len(clusters))
        self.assertEqual('CC', clusters[0].key.barcode)
        self.assertEqual(1, builder.dropped)

    def test_clusters_in_sort_key_order(self):
        groups = [group_of(mock_read(position=p)) for p in [1, 2, 3]]
        clusters = list(ClusterBuilder().build(groups))
        sort_keys = [c.sort_key() for c in clusters]
        self.assertEqual(sorted(sort_keys), sort_keys)

    def test_empty_group(self):
        with self.assertRaises(AssertionError):
            list(ClusterBuilder().build([(mock_read().key(), [])]))

    def test_read_from_wrong_group(self):
        key = mock_read(barcode='TT').key()
        with self.assertRaises(AssertionError):
            list(ClusterBuilder().build([(key, [mock_read(barcode='AA')])]))


class TestDuplicateCluster(unittest.TestCase):

    def test_sort_key(self):
        read = mock_read()
        cluster = DuplicateCluster(read.key(), 2, (read, ), CONFIDENCE.DEGRADED)
        self.assertEqual((read.key(), 2), cluster.sort_key())
