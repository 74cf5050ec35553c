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
from pyscf import gto, scf, mp, ao2mo
from mbptr12 import spin as spincase
from mbptr12 import pairindex
from mbptr12 import corrfactor as cf
from mbptr12.tbint_tensor import compute_tbint_tensor
from mbptr12.r12info import R12Technology, R12WavefunctionWorld
from mbptr12.r12int_eval import R12IntEval
from mbptr12.errors import (InputError, FeatureNotImplemented,
                            TransformNotFound, ProgrammingError)

AB, AA, BB = spincase.AlphaBeta, spincase.AlphaAlpha, spincase.BetaBeta

def setUpModule():
    global mol, mf
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

def tearDownModule():
    global mol, mf
    del mol, mf

def make_eval(ref=None, auxbasis=None, vbsbasis=None, **kwargs):
    if ref is None:
        ref = mf
    world = R12WavefunctionWorld(ref, R12Technology(**kwargs), auxbasis,
                                 vbsbasis)
    return R12IntEval(world)


class KnownValues(unittest.TestCase):
    def test_emp2_pairs(self):
        ev = make_eval()
        e = sum(ev.emp2(S).sum() for S in spincase.SpinCase2)
        emp2 = mp.MP2(mf).kernel()[0]
        self.assertAlmostEqual(e, emp2, 9)
        nocc = mol.nelectron // 2
        self.assertEqual(ev.emp2(AB).shape, (nocc*nocc,))
        self.assertEqual(ev.emp2(AA).shape, (nocc*(nocc-1)//2,))

    def test_dimensions(self):
        ev = make_eval()
        nocc = mol.nelectron // 2
        nvir = mol.nao_nr() - nocc
        nab = nocc * nocc
        naa = nocc * (nocc-1) // 2
        self.assertEqual(ev.dim_GG(AB), nab)
        self.assertEqual(ev.dim_gg(AA), naa)
        self.assertEqual(ev.dim_vv(AA), nvir*(nvir-1)//2)
        self.assertEqual(ev.V(AB).shape, (nab, nab))
        self.assertEqual(ev.V(AA).shape, (naa, naa))
        self.assertEqual(ev.X(AB).shape, (nab, nab))
        self.assertEqual(ev.B(AA).shape, (naa, naa))
        self.assertEqual(ev.A(AB).shape, (nab, 0))
        self.assertEqual(ev.A(AA).shape, (naa, 0))
        self.assertEqual(ev.cabs().rank, 0)

    def test_restricted_aliases(self):
        ev = make_eval()
        self.assertFalse(ev.spin_polarized)
        self.assertTrue(ev.V(AA) is ev.V(BB))
        self.assertTrue(ev.X(AA) is ev.X(BB))
        self.assertTrue(ev.B(AA) is ev.B(BB))
        self.assertTrue(ev.emp2(AA) is ev.emp2(BB))
        nocc = mol.nelectron // 2
        V_aa = pairindex.antisymmetrize(ev.V(AB), nocc, nocc, nocc, nocc)
        self.assertTrue(numpy.allclose(ev.V(AA), V_aa))

    def test_symmetric_intermediates(self):
        ev = make_eval(stdapprox="A'")
        for S in (AB, AA):
            X = ev.X(S)
            B = ev.B(S)
            self.assertTrue(numpy.allclose(X, X.T))
            self.assertTrue(numpy.allclose(B, B.T))
            self.assertTrue(numpy.all(X.diagonal() > 0))

    def test_r12_projector1(self):
        ev = make_eval(corrfactor='r12', stdapprox="A'", projector=1)
        self.assertEqual(ev.corrfactor.nfunctions, 1)
        nocc = mol.nelectron // 2
        self.assertTrue(numpy.allclose(ev.V(AB), numpy.eye(nocc*nocc)))
        self.assertTrue(numpy.allclose(ev.V(AA), numpy.eye(nocc*(nocc-1)//2)))
        self.assertTrue(numpy.allclose(ev.X(AB), ev.X(AB).T))

    def test_tbint_antisymmetry(self):
        ev = make_eval()
        occ = ev.occ()
        nocc = occ.rank
        tforms = ev.eri_tforms(occ, occ, occ, occ)
        rect = numpy.zeros((nocc*nocc, nocc*nocc))
        compute_tbint_tensor(rect, cf.ERI, occ, occ, occ, occ, False, tforms)
        eri = ao2mo.restore(1, ao2mo.kernel(mol, occ.coefs.copy()), nocc)
        ref = eri.transpose(0,2,1,3)
        self.assertTrue(numpy.allclose(rect.reshape((nocc,)*4), ref))

        packed = numpy.zeros((nocc*(nocc-1)//2,)*2)
        compute_tbint_tensor(packed, cf.ERI, occ, occ, occ, occ, True, tforms)
        full = pairindex.unpack_antisym(packed, nocc, nocc)
        self.assertTrue(numpy.allclose(full, ref - ref.transpose(0,1,3,2)))
        self.assertTrue(numpy.allclose(full, -full.transpose(1,0,2,3)))

    def test_r12_minimal_basis(self):
        he = gto.M(atom='He', basis='sto-3g', verbose=0)
        mfhe = scf.RHF(he).run()
        tech = R12Technology(corrfactor='r12', stdapprox="A'", projector=1)
        ev = R12IntEval(R12WavefunctionWorld(mfhe, tech))
        self.assertTrue(numpy.allclose(ev.V(AB), numpy.ones((1,1))))
        self.assertEqual(ev.V(AA).shape, (0, 0))
        self.assertEqual(ev.A(AB).shape, (1, 0))
        self.assertEqual(ev.emp2(AB)[0], 0)

    def test_two_geminals(self):
        ev = make_eval(zeta=[.9, 1.6])
        nocc = mol.nelectron // 2
        self.assertEqual(ev.dim_f12(AB), 2*nocc*nocc)
        self.assertEqual(ev.V(AB).shape, (2*nocc*nocc, nocc*nocc))
        self.assertEqual(ev.X(AA).shape, (nocc*(nocc-1), nocc*(nocc-1)))
        ev1 = make_eval(zeta=.9)
        self.assertTrue(numpy.allclose(ev.V(AB)[:nocc*nocc], ev1.V(AB)))

    def test_coupling(self):
        ev = make_eval(coupling=True, gbc=False)
        nocc = mol.nelectron // 2
        nvir = mol.nao_nr() - nocc
        self.assertTrue(ev.coupling_active())
        self.assertEqual(ev.A(AB).shape, (nocc*nocc, nvir*nvir))
        self.assertEqual(ev.A(AA).shape, (nocc*(nocc-1)//2, nvir*(nvir-1)//2))

    def test_stdapprox_with_cabs(self):
        mfu = scf.UHF(mol)
        mfu.conv_tol = 1e-12
        mfu.kernel()
        for approx in ("A''", "A'", 'B', 'C', "C'"):
            for projector in (1, 2):
                ev = make_eval(auxbasis='cc-pvdz', stdapprox=approx,
                               projector=projector)
                evu = make_eval(mfu, auxbasis='cc-pvdz', stdapprox=approx,
                                projector=projector)
                self.assertTrue(ev.cabs().rank > 0)
                self.assertTrue(evu.spin_polarized)
                for S in spincase.SpinCase2:
                    X = ev.X(S)
                    B = ev.B(S)
                    self.assertTrue(numpy.allclose(X, X.T))
                    self.assertTrue(numpy.allclose(B, B.T))
                    self.assertTrue(numpy.all(X.diagonal() > 0))
                    # orbital phases may differ between RHF and UHF
                    for name in ('V', 'X', 'B'):
                        a = getattr(ev, name)(S)
                        b = getattr(evu, name)(S)
                        self.assertEqual(a.shape, b.shape)
                        self.assertTrue(numpy.allclose(abs(a), abs(b), atol=1e-6),
                                        '%s(%s) %s projector %d' %
                                        (name, spincase.to_string(S), approx,
                                         projector))

    def test_gbc_terms(self):
        def B(**kwargs):
            return make_eval(auxbasis='cc-pvdz', **kwargs).B(AB)
        for approx in ("A'", "C'"):
            b0 = B(stdapprox=approx)
            self.assertFalse(numpy.allclose(B(stdapprox=approx, gbc=False), b0))
            self.assertTrue(numpy.allclose(B(stdapprox=approx, projector=1, gbc=False),
                                           B(stdapprox=approx, projector=1)))
        self.assertTrue(numpy.allclose(B(stdapprox='C', gbc=False),
                                       B(stdapprox='C')))

    def test_ebc_terms(self):
        def B(**kwargs):
            return make_eval(auxbasis='cc-pvdz', **kwargs).B(AB)
        b0 = B(stdapprox="A''")
        self.assertFalse(numpy.allclose(B(stdapprox="A''", ebc=False), b0))
        self.assertTrue(numpy.allclose(B(stdapprox="A''", projector=1, ebc=False),
                                       B(stdapprox="A''", projector=1)))
        self.assertTrue(numpy.allclose(B(stdapprox="C'", ebc=False),
                                       B(stdapprox="C'")))

    def test_gbc_with_vbs(self):
        ev = make_eval(auxbasis='cc-pvdz', vbsbasis='cc-pvdz',
                       stdapprox="A'", gbc=False)
        self.assertRaises(FeatureNotImplemented, ev.compute)

    def test_approx_b_exchange(self):
        self.assertRaises(ProgrammingError, make_eval().BB, AB)
        ev = make_eval(stdapprox='B')
        self.assertTrue(abs(ev.BB(AB)).max() > 1e-6)
        self.assertTrue(ev.BB(AA) is ev.BB(BB))
        ev = make_eval(stdapprox='B', projector=1)
        self.assertAlmostEqual(abs(ev.BB(AB)).max(), 0, 14)
        self.assertTrue(numpy.allclose(ev.B(AB), make_eval(stdapprox="A'",
                                                           projector=1).B(AB)))

    def test_obsolete(self):
        ev = make_eval()
        v0 = ev.V(AB).copy()
        ev.obsolete()
        self.assertFalse(ev.evaluated)
        self.assertTrue(numpy.allclose(ev.V(AB), v0))
        self.assertRaises(TransformNotFound, ev.get_tform, 'no such transform')

    def test_options(self):
        self.assertRaises(InputError, R12Technology, foo=1)
        self.assertRaises(InputError, R12Technology, coupling=True, gbc=True)
        self.assertRaises(InputError, R12Technology, stdapprox='D')
        self.assertRaises(InputError, R12Technology, zeta=-1.)
        self.assertRaises(FeatureNotImplemented, R12Technology, dk=2)


if __name__ == "__main__":
    print("Full Tests for R12 intermediates")
    unittest.main()
