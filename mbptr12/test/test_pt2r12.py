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
from pyscf import gto, scf, mcscf
import mbptr12
from mbptr12 import spin as spincase
from mbptr12.pt2r12 import PT2R12
from mbptr12.errors import InputError

AB, AA, BB = spincase.AlphaBeta, spincase.AlphaAlpha, spincase.BetaBeta

def setUpModule():
    global mol, mf, he, mfhe
    mol = gto.Mole()
    mol.verbose = 0
    mol.output = None
    mol.atom = 'Li 0 0 0; H 0 0 1.6'
    mol.basis = '6-31g'
    mol.build()
    mf = scf.RHF(mol)
    mf.conv_tol = 1e-12
    mf.conv_tol_grad = 1e-9
    mf.kernel()

    he = gto.M(atom='He', basis='cc-pvdz', verbose=0)
    mfhe = scf.RHF(he)
    mfhe.conv_tol = 1e-12
    mfhe.kernel()

def tearDownModule():
    global mol, mf, he, mfhe
    del mol, mf, he, mfhe


class KnownValues(unittest.TestCase):
    def test_hf_reference_matches_mp2r12(self):
        pt = PT2R12(mf)
        e_tot = pt.kernel()
        m = mbptr12.MP2R12(mf)
        for S in spincase.SpinCase2:
            self.assertAlmostEqual(pt.e_pt2r12[S], m.ef12tot(S), 8)
        self.assertAlmostEqual(e_tot, mf.e_tot + sum(pt.e_pt2r12), 12)
        self.assertEqual(pt.e_cabs_singles, 0.)

    def test_projector1(self):
        pt = PT2R12(mf, projector=1, stdapprox="A'")
        e_pairs = pt.energy_PT2R12(AB)
        m = mbptr12.MP2R12(mf, projector=1, stdapprox="A'")
        self.assertTrue(numpy.allclose(e_pairs, m.ef12(AB)))

    def test_hf_densities(self):
        pt = PT2R12(mf)
        nocc = mol.nelectron // 2
        self.assertAlmostEqual(pt.energy_recomputed_from_densities(),
                               mf.e_tot, 8)
        phi = pt.phi_gg(AB)
        e = mf.mo_energy[:nocc]
        self.assertTrue(numpy.allclose(phi, numpy.diag((e[:,None]+e).ravel()),
                                       atol=1e-6))
        self.assertTrue(numpy.allclose(pt.rdm2_gg(AA), numpy.eye(1)))
        self.assertTrue(numpy.allclose(pt.lambda2(AB), 0))
        for K in pt.brillouin_matrix():
            self.assertTrue(numpy.allclose(K, 0, atol=1e-6))

    def test_cabs_singles_hf(self):
        pt = PT2R12(mfhe, auxbasis='cc-pvtz')
        pt.cabs_singles = True
        e1 = pt.compute_cabs_singles()
        self.assertTrue(e1 < 0)
        pt.cabs_singles_h0 = 'complete'
        e2 = pt.compute_cabs_singles()
        self.assertAlmostEqual(e1, e2, 9)
        self.assertAlmostEqual(e1, pt.r12eval.emp2_cabs_singles(), 7)

    def test_cabs_singles_rotate_core(self):
        pt = PT2R12(mfhe, auxbasis='cc-pvtz', nfzc=1)
        pt.rotate_core = False
        self.assertEqual(pt.compute_cabs_singles(), 0)

    def test_omit_uocc(self):
        he_min = gto.M(atom='He', basis='sto-3g', verbose=0)
        mf_min = scf.RHF(he_min).run()
        pt = PT2R12(mf_min, omit_uocc=True)
        self.assertEqual(pt.r12eval.vir().rank, 0)
        self.assertEqual(pt.r12eval.cabs().rank, 0)
        self.assertEqual(pt.energy_cabs_singles(), 0.0)
        self.assertEqual(pt.energy_cabs_singles_twobody_H0(), 0.0)

    def test_casci_reference(self):
        mc = mcscf.CASCI(mf, 2, 2)
        mc.kernel()
        pt = PT2R12(mc)
        self.assertFalse(pt.spin_polarized)
        self.assertAlmostEqual(pt.energy_recomputed_from_densities(),
                               mc.e_tot, 7)
        nocc = mc.ncore + mc.ncas
        self.assertEqual(pt.rdm1().shape, (nocc, nocc))
        self.assertAlmostEqual(numpy.trace(pt.rdm1()), mol.nelectron*.5, 8)
        e_tot = pt.kernel()
        self.assertAlmostEqual(pt.e_ref, mc.e_tot, 12)
        self.assertAlmostEqual(e_tot, mc.e_tot + sum(pt.e_pt2r12), 12)
        self.assertEqual(len(pt.e_pt2r12_pairs[AB]), nocc*nocc)

    def test_options(self):
        self.assertRaises(InputError, PT2R12, mf, r12tech=mbptr12.R12Technology(),
                          projector=1)
        pt = PT2R12(mf)
        pt.cabs_singles_h0 = 'unknown'
        self.assertRaises(InputError, pt.kernel)


if __name__ == "__main__":
    print("Full Tests for PT2R12")
    unittest.main()
