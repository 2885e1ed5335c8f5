"""Tests for per-sample branch selection."""

import pytest

from mosaicall.branches import BranchKind, Role, select_branches
from mosaicall.sample_list import FamilyRecord, Gender


def record(mother=None, father=None, gender=Gender.MALE):
    return FamilyRecord("/bam/fam", "P1", gender, mother, father)


class TestSelectBranches:

    def test_trio(self):
        branches = select_branches(record("MO1", "FA1"))

        assert [(b.sample_id, b.role, b.kind) for b in branches] == [
            ("P1", Role.PROBAND, BranchKind.TRIO),
            ("MO1", Role.MOTHER, BranchKind.SINGLE),
            ("FA1", Role.FATHER, BranchKind.SINGLE),
        ]
        proband = branches[0]
        assert (proband.mother_id, proband.father_id) == ("MO1", "FA1")

    def test_parent_genders(self):
        _, mother, father = select_branches(record("MO1", "FA1", gender=Gender.FEMALE))

        assert mother.gender is Gender.FEMALE
        assert father.gender is Gender.MALE
        assert mother.mother_id is None and mother.father_id is None

    @pytest.mark.parametrize(
        "mother,father,expected_ids",
        [
            (None, None, ["P1"]),
            ("MO1", None, ["P1", "MO1"]),
            (None, "FA1", ["P1", "FA1"]),
        ],
    )
    def test_proband_is_single_unless_both_parents_present(self, mother, father, expected_ids):
        branches = select_branches(record(mother, father))

        assert [b.sample_id for b in branches] == expected_ids
        assert all(b.kind is BranchKind.SINGLE for b in branches)
        assert branches[0].mother_id is None and branches[0].father_id is None

    def test_every_branch_shares_bam_directory(self):
        assert {b.bam_dir for b in select_branches(record("MO1", "FA1"))} == {"/bam/fam"}
