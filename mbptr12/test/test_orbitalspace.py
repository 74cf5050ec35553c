#!/usr/bin/env python
# Copyright 2014-2020 The PySCF Developers. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import unittest
import numpy
from pyscf import gto
from mbptr12 import orbitalspace
from mbptr12.orbitalspace import (BasisSet, OrbitalSpace, EmptyOrbitalSpace,
                                  OrbitalSpaceRegistry)
from mbptr12.integrals import build_world
from mbptr12.errors import ProgrammingError

def setUpModule():
    global mol, world, bases
    mol = gto.Mole()
    mol.verbose = 0
    mol.atom = 'H 0 0 0; H 0 0 .74'
    mol.basis = 'cc-pvdz'
    mol.build()
    world, bases = build_world(mol, auxbasis='cc-pvtz')

def tearDownModule():
    global mol, world, bases
    del mol, world, bases


class KnownValues(unittest.TestCase):
    def test_world_bases(self):
        obs, abs_ = bases['obs'], bases['abs']
        self.assertEqual(obs.nao, mol.nao_nr())
        self.assertEqual(obs.ao0, 0)
        self.assertEqual(abs_.ao0, obs.nao)
        self.assertEqual(abs_.ao1, world.nao_nr())
        self.assertTrue(bases['vbs'] == obs)
        ribs = obs.union(abs_)
        self.assertEqual(ribs.nao, world.nao_nr())
        self.assertTrue(ribs.contains(obs))
        self.assertTrue(ribs.contains(abs_))
        self.assertFalse(obs.contains(abs_))
        # the auxiliary functions sit on ghost atoms
        self.assertAlmostEqual(world.energy_nuc(), mol.energy_nuc(), 12)

    def test_coefs_in(self):
        obs, abs_ = bases['obs'], bases['abs']
        ribs = obs.union(abs_)
        s = OrbitalSpace('x', 'test', numpy.eye(abs_.nao)[:,:2], abs_)
        c = s.coefs_in(ribs)
        self.assertEqual(c.shape, (ribs.nao, 2))
        self.assertEqual(c[obs.nao,0], 1.)
        self.assertEqual(abs(c[:obs.nao]).sum(), 0)
        self.assertRaises(ProgrammingError, s.coefs_in, obs)

    def test_registry(self):
        obs = bases['obs']
        reg = OrbitalSpaceRegistry()
        c = numpy.eye(obs.nao)
        occ = OrbitalSpace('i', 'occupied', c[:,:1], obs)
        vir = OrbitalSpace('a', 'virtual', c[:,1:], obs)
        self.assertTrue(reg.add(occ) is occ)
        self.assertTrue(reg.add(vir) is vir)
        self.assertEqual(len(reg), 2)
        # identical content is stored once, under the first key
        dup = OrbitalSpace('m', 'occupied again', c[:,:1], obs)
        self.assertTrue(reg.add(dup) is occ)
        self.assertEqual(reg.register(dup), 'i')
        self.assertFalse('m' in reg)
        self.assertTrue(reg.value_exists(dup))
        self.assertTrue(reg.key_exists('a'))
        clash = OrbitalSpace('a', 'other', c[:,:2], obs)
        self.assertRaises(ProgrammingError, reg.register, clash)
        self.assertRaises(KeyError, reg.lookup, 'x')
        reg.remove('a')
        self.assertEqual(sorted(reg.keys()), ['i'])
        reg.clear()
        self.assertEqual(len(reg), 0)

    def test_union_index_map(self):
        obs = bases['obs']
        c = numpy.eye(obs.nao)
        e = numpy.arange(obs.nao, dtype=float)
        occ = OrbitalSpace('i', 'occupied', c[:,:1], obs, e[:1])
        vir = OrbitalSpace('a', 'virtual', c[:,1:], obs, e[1:])
        p = orbitalspace.union_spaces('p', 'all', occ, vir)
        self.assertEqual(p.rank, obs.nao)
        self.assertTrue(numpy.allclose(p.energies, e))
        self.assertEqual(list(orbitalspace.index_map(vir, p)),
                         list(range(1, obs.nao)))
        self.assertRaises(ProgrammingError, orbitalspace.index_map, p, vir)
        empty = EmptyOrbitalSpace('e', 'nothing', obs)
        self.assertEqual(empty.rank, 0)
        self.assertEqual(orbitalspace.union_spaces('q', 'q', empty, occ).rank, 1)

    def test_subspace(self):
        obs = bases['obs']
        e = numpy.array([3., 1., 2.] + [4.]*(obs.nao-3))
        s = OrbitalSpace('p', 'all', numpy.eye(obs.nao), obs, e)
        r = s.reorder_by_energy('q', 'sorted')
        self.assertEqual(list(r.energies[:3]), [1., 2., 3.])
        self.assertEqual(r.coefs[0,2], 1.)
        sub = s.subspace('x', 'sub', [1, 2])
        self.assertEqual(sub.rank, 2)
        self.assertRaises(ProgrammingError, OrbitalSpace, 'y', 'bad',
                          numpy.eye(3), obs)


if __name__ == "__main__":
    print("Full Tests for orbital spaces")
    unittest.main()
