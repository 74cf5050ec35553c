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
from pyscf import gto, scf, mp
import mbptr12
from mbptr12 import spin as spincase
from mbptr12 import corrfactor
from mbptr12.mp2r12_energy import (CuspConsistentGeminalCoefficient,
                                   geminal_coefficients)
from mbptr12.errors import ProgrammingError

AB, AA, BB = spincase.AlphaBeta, spincase.AlphaAlpha, spincase.BetaBeta

def setUpModule():
    global mol, mf, emp2
    mol = gto.Mole()
    mol.verbose = 0
    mol.output = None
    mol.atom = [
        [8 , (0. , 0.     , 0.)],
        [1 , (0. , -0.757 , 0.587)],
        [1 , (0. , 0.757  , 0.587)]]
    mol.basis = '6-31g'
    mol.build()
    mf = scf.RHF(mol)
    mf.conv_tol = 1e-12
    mf.kernel()
    emp2 = mp.MP2(mf).kernel()[0]

def tearDownModule():
    global mol, mf, emp2
    del mol, mf, emp2


class KnownValues(unittest.TestCase):
    def test_cusp_coefficients(self):
        cf = corrfactor.CorrelationFactor('stg', 1.5)
        s = -1. / 1.5
        c = CuspConsistentGeminalCoefficient(AB, cf)
        self.assertAlmostEqual(c.C(0, 0, 0, 0), .5*s, 14)
        self.assertAlmostEqual(c.C(0, 1, 0, 1), .375*s, 14)
        self.assertAlmostEqual(c.C(0, 1, 1, 0), .125*s, 14)
        self.assertAlmostEqual(c.C(0, 1, 1, 2), 0, 14)
        c = CuspConsistentGeminalCoefficient(AA, cf)
        self.assertAlmostEqual(c.C(1, 0, 1, 0), .25*s, 14)
        self.assertAlmostEqual(c.C(1, 0, 0, 1), -.25*s, 14)

        m = CuspConsistentGeminalCoefficient(AB, cf).matrix([0, 1], [0, 1], 2, 2)
        self.assertEqual(m.shape, (4, 4))
        self.assertAlmostEqual(m[0,0], .5*s, 14)
        self.assertAlmostEqual(m[1,1], .375*s, 14)
        self.assertAlmostEqual(m[2,1], .125*s, 14)
        m = CuspConsistentGeminalCoefficient(AA, cf).matrix([0, 1], [0, 1], 2, 2)
        self.assertEqual(m.shape, (1, 1))
        self.assertAlmostEqual(m[0,0], .25*s, 14)

    def test_mp2_part(self):
        m = mbptr12.MP2R12(mf)
        e = m.energy()
        ef12 = sum(m.ef12tot(S) for S in spincase.SpinCase2)
        self.assertAlmostEqual(e - ef12, emp2, 9)
        self.assertTrue(m.ef12(AA) is m.ef12(BB))
        nocc = mol.nelectron // 2
        C = m.C(AB)
        self.assertTrue(numpy.allclose(C, geminal_coefficients(m.r12eval, AB)))
        ii = 2 * nocc + 2
        self.assertAlmostEqual(C[ii,ii], -.5 / m.r12eval.corrfactor.zeta[0], 14)

    def test_fullopt_stationary(self):
        m = mbptr12.MP2R12(mf, fullopt=True)
        m.kernel()
        for S in (AB, AA):
            C = m.C(S)
            V = m.r12eval.V(S)
            self.assertTrue(numpy.allclose(m.ef12(S),
                                           numpy.einsum('ki,ki->i', C, V)))

    def test_with_cabs(self):
        m = mbptr12.MP2R12(mf, auxbasis='cc-pvdz')
        self.assertTrue(m.r12eval.cabs().rank > 0)
        e = m.energy()
        self.assertTrue(e - emp2 < 0)
        self.assertAlmostEqual(e - sum(m.ef12tot(S) for S in spincase.SpinCase2),
                               emp2, 9)

    def test_coupling_without_ri(self):
        e0 = mbptr12.MP2R12(mf, gbc=False).energy()
        m = mbptr12.MP2R12(mf, gbc=False, coupling=True)
        self.assertTrue(m.r12intermeds.coupling())
        self.assertAlmostEqual(m.energy(), e0, 10)

    def test_uhf_matches_rhf(self):
        mfu = scf.UHF(mol)
        mfu.conv_tol = 1e-12
        mfu.kernel()
        mu = mbptr12.MP2R12(mfu)
        self.assertTrue(mu.spin_polarized)
        e = mbptr12.MP2R12(mf).energy()
        self.assertAlmostEqual(mu.energy(), e, 7)
        self.assertAlmostEqual(mu.ef12tot(AA), mu.ef12tot(BB), 7)

    def test_frozen_virtuals(self):
        nvir = mol.nao_nr() - mol.nelectron // 2
        m = mbptr12.MP2R12(mf, nfzv=2)
        self.assertEqual(m.r12eval.vir().rank, nvir)
        self.assertEqual(m.r12eval.vir_act().rank, nvir - 2)
        m = mbptr12.MP2R12(mf, omit_uocc=True)
        self.assertEqual(m.r12eval.vir().rank, 0)
        self.assertEqual(m.r12eval.orbs().rank, mol.nelectron // 2)

    def test_orbital_product_check(self):
        m = mbptr12.MP2R12(mf, orbital_product_gg='pq')
        self.assertRaises(ProgrammingError, m.energy)


if __name__ == "__main__":
    print("Full Tests for MP2-R12 energies")
    unittest.main()
