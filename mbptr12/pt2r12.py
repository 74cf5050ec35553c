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

'''
[2]_R12 correction to a general reference

The geminal amplitudes are fixed by the cusp conditions, the reference
enters through its 1- and 2-RDMs over the occupied (rdm) orbitals.  The
Hylleraas functional of one spin case, with projector 2,

    H = C^T B C Gamma - C^T X C Phi + 2 (V Gamma)^T C

is summed over the diagonal of the gg pairs.  Phi is the generalized Fock
contribution of Dyall's zeroth order Hamiltonian built from the RDMs and
their cumulant.  Singles into the CABS (and optionally the virtuals) are
optionally added with a one-body (Dyall-like) or two-body zeroth order
Hamiltonian.

Refs:
* Torheyden, Valeev, JCP 131, 171103 (2009)
* Kong, Valeev, JCP 133, 174126 (2010)
'''

from functools import reduce
import numpy
import scipy.linalg
from pyscf import lib
from pyscf.lib import logger
from pyscf import __config__
from mbptr12 import spin as spincase
from mbptr12 import pairindex
from mbptr12 import parallel
from mbptr12 import corrfactor as cf
from mbptr12.errors import InputError
from mbptr12.orbitalspace import index_map, union_spaces
from mbptr12.r12info import R12Technology, R12WavefunctionWorld
from mbptr12.r12int_eval import R12IntEval
from mbptr12.mp2r12_energy import geminal_coefficients
from mbptr12.tbint_tensor import compute_tbint_tensor

H0_TYPES = ('dyall_1', 'complete')


class PT2R12(lib.StreamObject):
    '''[2]_R12 energy of an SCF or CASCI/CASSCF reference.

    Attributes:
        pt2_correction : bool
            Add the geminal correction
        cabs_singles : bool
            Add the singles correction into the CABS
        cabs_singles_coupling : bool
            Let the singles also relax within the virtual orbitals
        cabs_singles_h0 : str
            'dyall_1' one-body or 'complete' two-body zeroth order
            Hamiltonian of the singles
        rotate_core : bool
            Include excitations out of the frozen core in the singles

    Saved results

        e_tot : float
            Reference energy plus corrections
        e_pt2r12 : list
            Geminal correction per spin case
        e_cabs_singles : float
    '''
    pt2_correction = getattr(__config__, 'mbptr12_pt2r12_pt2_correction', True)
    cabs_singles = getattr(__config__, 'mbptr12_pt2r12_cabs_singles', False)
    cabs_singles_coupling = getattr(__config__,
                                    'mbptr12_pt2r12_cabs_singles_coupling', True)
    cabs_singles_h0 = getattr(__config__, 'mbptr12_pt2r12_cabs_singles_h0',
                              'dyall_1')
    rotate_core = getattr(__config__, 'mbptr12_pt2r12_rotate_core', True)
    omit_uocc = getattr(__config__, 'mbptr12_pt2r12_omit_uocc', False)

    def __init__(self, ref, auxbasis=None, vbsbasis=None, nfzc=0, r12tech=None,
                 omit_uocc=None, group=None, **kwargs):
        if omit_uocc is not None:
            self.omit_uocc = omit_uocc
        if r12tech is None:
            r12tech = R12Technology(**kwargs)
        elif kwargs:
            raise InputError('options given together with an R12Technology',
                             'kwargs', kwargs)
        self.mol = ref.mol
        self.verbose = self.mol.verbose
        self.stdout = self.mol.stdout
        self.max_memory = getattr(ref, 'max_memory', self.mol.max_memory)
        self.world = R12WavefunctionWorld(ref, r12tech, auxbasis, vbsbasis,
                                          nfzc, 0, self.omit_uocc)
        self.r12eval = R12IntEval(self.world, group)

##################################################
# don't modify the following attributes, they are not input options
        self.e_tot = None
        self.e_ref = None
        self.e_pt2r12 = None
        self.e_pt2r12_pairs = None
        self.e_cabs_singles = None
        self._keys = set(self.__dict__.keys())

    @property
    def spin_polarized(self):
        return self.world.spin_polarized

    @property
    def ref(self):
        return self.world.ref

    def dump_flags(self, verbose=None):
        log = logger.new_logger(self, verbose)
        self.r12eval.dump_flags(verbose)
        log.info('')
        log.info('******** %s ********', self.__class__.__name__)
        log.info('pt2_correction = %s', self.pt2_correction)
        log.info('omit_uocc = %s', self.omit_uocc)
        log.info('cabs_singles = %s', self.cabs_singles)
        if self.cabs_singles:
            log.info('cabs_singles_coupling = %s', self.cabs_singles_coupling)
            log.info('cabs_singles_h0 = %s', self.cabs_singles_h0)
            log.info('rotate_core = %s', self.rotate_core)
        return self

    def check_sanity(self):
        if self.cabs_singles_h0 not in H0_TYPES:
            raise InputError('unknown zeroth order Hamiltonian of the singles',
                             'cabs_singles_h0', self.cabs_singles_h0)
        return lib.StreamObject.check_sanity(self)

    # densities
    def rdm_space(self, spin=spincase.Alpha):
        return self.world.add_space(self.ref.rdm_space(spin))

    def rdm1(self, spin=spincase.Alpha):
        return self.ref.rdm1(spin)

    def rdm2(self, S):
        return self.ref.rdm2(S)

    def lambda2(self, S):
        return self.ref.cumulant(S)

    def f(self, spin=spincase.Alpha):
        '''Fock matrix over the rdm space'''
        p = self.rdm_space(spin)
        return self.r12eval.fock(p, p, spin)

    def _gg_index(self, spin):
        return index_map(self.r12eval.ggspace(spin), self.rdm_space(spin))

    def _to_gg(self, a, S):
        '''4-index array over the rdm space -> matrix over gg pairs'''
        i1 = self._gg_index(spincase.case1(S))
        i2 = self._gg_index(spincase.case2(S))
        a = a[numpy.ix_(i1, i2, i1, i2)]
        if S == spincase.AlphaBeta:
            return a.reshape(len(i1)*len(i2), -1)
        return pairindex.pack_antisym(a)

    def rdm2_gg(self, S):
        return self._to_gg(self.ref.rdm2_full(S), S)

    def lambda2_gg(self, S):
        return self._to_gg(self.ref.cumulant_full(S), S)

    def phi_gg(self, S):
        return self._to_gg(self.phi_full(S), S)

    def _cumulant_fock(self, spin):
        '''M[P,U] = sum_QV f(Q,V) lambda(P,Q,U,V) over both spins of the
        second particle'''
        ref = self.ref
        other = spincase.other(spin)
        same = spincase.case12(spin, spin)
        M = lib.einsum('qv,pquv->pu', self.f(spin), ref.cumulant_full(same))
        lam_ab = ref.cumulant_full(spincase.AlphaBeta)
        if spin == spincase.Alpha:
            M += lib.einsum('qv,pquv->pu', self.f(other), lam_ab)
        else:
            M += lib.einsum('qv,qpvu->pu', self.f(other), lam_ab)
        return M

    def phi_full(self, S):
        '''Phi[p,q,u,v] = <0|p^+ q^+ [F1+F2, v u]|0> of Dyall's Fock
        operator, expressed through the 1-RDM, the cumulant and the Fock
        matrix'''
        s1, s2 = spincase.case1(S), spincase.case2(S)
        g1, g2 = self.rdm1(s1), self.rdm1(s2)
        f1, f2 = self.f(s1), self.f(s2)
        K1, K2 = numpy.dot(g1, f1), numpy.dot(g2, f2)
        I1 = reduce(numpy.dot, (g1, f1, g1))
        I2 = reduce(numpy.dot, (g2, f2, g2))
        M1, M2 = self._cumulant_fock(s1), self._cumulant_fock(s2)
        lam = self.ref.cumulant_full(S)
        phi = numpy.einsum('pu,qv->pquv', I1 - M1, g2)
        phi += numpy.einsum('pu,qv->pquv', g1, I2 - M2)
        if S != spincase.AlphaBeta:
            phi -= phi.transpose(0,1,3,2)
        phi += lib.einsum('pquz,vz->pquv', lam, K2)
        phi += lib.einsum('pqzv,uz->pquv', lam, K1)
        phi += lib.einsum('pzuv,qz->pquv', lam, K2)
        phi += lib.einsum('zquv,pz->pquv', lam, K1)
        return phi

    def phi_cumulant(self, S):
        '''Phi over the pairs of the rdm space'''
        return pairindex.to_pair_matrix(self.phi_full(S),
                                        S != spincase.AlphaBeta)

    # integrals
    def g(self, S, bra1, bra2, ket1, ket2):
        '''<bra1 bra2|1/r12|ket1 ket2>, antisymmetrized (and packed over
        identical spaces) for same-spin pairs'''
        ev = self.r12eval
        add = self.world.add_space
        bra1, bra2, ket1, ket2 = add(bra1), add(bra2), add(ket1), add(ket2)
        antisym = S != spincase.AlphaBeta
        nbra = pairindex.pair_dim(bra1.rank, bra2.rank, S, bra1 is bra2)
        nket = pairindex.pair_dim(ket1.rank, ket2.rank, S, ket1 is ket2)
        T = numpy.zeros((nbra, nket))
        compute_tbint_tensor(T, cf.ERI, bra1, bra2, ket1, ket2, antisym,
                             ev.eri_tforms(bra1, ket1, bra2, ket2), ev.group)
        return parallel.globally_sum(T, ev.group, to_all=True)

    def g_full(self, S, bra1, bra2, ket1, ket2):
        '''g as a 4-index array, antisymmetric in the ket for same spin'''
        T = self.g(spincase.AlphaBeta, bra1, bra2, ket1, ket2)
        T = T.reshape(bra1.rank, bra2.rank, ket1.rank, ket2.rank)
        if S != spincase.AlphaBeta:
            T = T - T.transpose(0,1,3,2)
        return T

    # geminal correction
    def C(self, S):
        return geminal_coefficients(self.r12eval, S)

    def energy_PT2R12_projector1(self, S):
        '''Pair energies with the projector 1 - |ij><ij|'''
        ev = self.r12eval
        V, X, B = ev.V(S), ev.X(S), ev.B(S)
        C = self.C(S)
        gamma = self.rdm2_gg(S)
        phi = self.phi_gg(S)
        H = 2 * reduce(numpy.dot, (V.T, C, gamma))
        H += reduce(numpy.dot, (C.T, B, C, gamma))
        H -= reduce(numpy.dot, (C.T, X, C, phi))
        return H.diagonal().copy()

    def energy_PT2R12_projector2(self, S):
        '''Pair energies with the projector (1-o1)(1-o2) - v1 v2'''
        ev = self.r12eval
        V, X, B = ev.V(S), ev.X(S), ev.B(S)
        C = self.C(S)
        gamma = self.rdm2_gg(S)
        phi = self.phi_gg(S)
        H = reduce(numpy.dot, (C.T, B, C, gamma))
        H -= reduce(numpy.dot, (C.T, X, C, phi))
        H += 2 * numpy.dot(numpy.dot(V, gamma).T, C)
        return H.diagonal().copy()

    def energy_PT2R12(self, S):
        if self.r12eval.r12tech.projector == 1:
            return self.energy_PT2R12_projector1(S)
        return self.energy_PT2R12_projector2(S)

    # singles
    def _singles_spaces(self, spin):
        '''(rdm space, external space, number of virtuals leading the
        external space)'''
        ev = self.r12eval
        p = self.rdm_space(spin)
        cabs = ev.cabs(spin)
        if self.cabs_singles_coupling:
            vir = ev.vir_act(spin)
            A = union_spaces('e+' + cabs.id,
                             spincase.prepend_spincase(spin, 'virtuals and CABS'),
                             vir, cabs)
            return p, self.world.add_space(A), vir.rank
        return p, cabs, 0

    def _core_mask(self, spin):
        '''Orbitals of the rdm space that are frozen in the correlation'''
        mask = numpy.ones(self.rdm_space(spin).rank, dtype=bool)
        mask[index_map(self.r12eval.occ_act(spin), self.rdm_space(spin))] = False
        return mask

    def _fock_pA(self, spin, p, A, nvir):
        F_pA = numpy.array(self.r12eval.fock(p, A, spin))
        F_pA[:,:nvir] = 0
        if not self.rotate_core:
            F_pA[self._core_mask(spin)] = 0
        return F_pA

    def _check_h0(self, H0, log):
        e = scipy.linalg.eigvalsh(pairindex.symmetrize(H0))
        if e.size and e[0] < 0:
            log.warn('Zeroth order Hamiltonian of the singles is not positive '
                     'definite, lowest eigenvalue %g', e[0])

    def energy_cabs_singles(self, spin=spincase.Alpha):
        '''Singles correction of one spin with the one-body (Dyall-like)
        zeroth order Hamiltonian

            H0(xB,yA) = gamma(x,y) F(A,B) + delta(A,B) (I(x,y) - gamma(x,y) <F>)
        '''
        log = logger.new_logger(self)
        p, A, nvir = self._singles_spaces(spin)
        no, nX = p.rank, A.rank
        if no == 0 or nX == 0:
            return 0.
        ev = self.r12eval
        other = spincase.other(spin)
        F_pA = self._fock_pA(spin, p, A, nvir)
        F_AA = ev.fock(A, A, spin)
        g1, f1 = self.rdm1(spin), self.f(spin)
        g1o, f1o = self.rdm1(other), self.f(other)
        FG = numpy.einsum('ij,ji', f1, g1) + numpy.einsum('ij,ji', f1o, g1o)

        ref = self.ref
        same = spincase.case12(spin, spin)
        if spin == spincase.Alpha:
            gamma_os = ref.rdm2_full(spincase.AlphaBeta)
        else:
            gamma_os = ref.rdm2_full(spincase.AlphaBeta).transpose(1,0,3,2)
        I = lib.einsum('qp,xpyq->xy', f1o, gamma_os)
        I += lib.einsum('qp,xpyq->xy', f1, ref.rdm2_full(same))

        H0 = numpy.kron(g1, F_AA.T) + numpy.kron(I - g1 * FG, numpy.eye(nX))
        self._check_h0(H0, log)
        rhs = -numpy.dot(g1, F_pA).ravel()
        t = scipy.linalg.solve(H0, rhs).reshape(no, nX)
        e = numpy.einsum('iA,ij,jA->', F_pA, g1, t)
        log.debug('CABS singles %s: %.15g', spincase.to_string(spin), e)
        return e

    def _I_twobody(self, spin, p_a, p_b):
        '''One-particle part of the two-body zeroth order Hamiltonian of the
        singles, over the rdm space of spin'''
        ref = self.ref
        other = spincase.other(spin)
        g1, g1o = self.rdm1(spin), self.rdm1(other)
        same = spincase.case12(spin, spin)
        gamma_ab = ref.rdm2_full(spincase.AlphaBeta)
        g_ab = self.g_full(spincase.AlphaBeta, p_a, p_b, p_a, p_b)
        if spin == spincase.Beta:
            gamma_ab = gamma_ab.transpose(1,0,3,2)
            g_ab = g_ab.transpose(1,0,3,2)
        ps = p_a if spin == spincase.Alpha else p_b
        g_ss = self.g_full(same, ps, ps, ps, ps)
        gamma_ss = ref.rdm2_full(same)

        I = numpy.dot(g1, self.f(spin))
        I += lib.einsum('ijyk,xkij->xy', g_ab, gamma_ab)
        I -= lib.einsum('ijyk,xi,kj->xy', g_ab, g1, g1o)
        I += .5 * lib.einsum('ijyk,xkij->xy', g_ss, gamma_ss)
        I -= .5 * lib.einsum('ijyk,xi,kj->xy', g_ss, g1, g1)
        I += .5 * lib.einsum('ijyk,xj,ki->xy', g_ss, g1, g1)

        core = self._core_mask(spin)
        act = ~core
        I[numpy.ix_(core, act)] = I[numpy.ix_(act, core)].T
        return pairindex.symmetrize(I)

    def energy_cabs_singles_twobody_H0(self):
        '''Singles correction of both spins with the complete (two-body)
        zeroth order Hamiltonian, solved as one linear system'''
        log = logger.new_logger(self)
        ev = self.r12eval
        p_a = self.rdm_space(spincase.Alpha)
        p_b = self.rdm_space(spincase.Beta)
        blocks = []
        rhs = []
        terms = []
        for s in (spincase.Alpha, spincase.Beta):
            p, A, nvir = self._singles_spaces(s)
            no, nX = p.rank, A.rank
            if no == 0 or nX == 0:
                continue
            F_pA = self._fock_pA(s, p, A, nvir)
            F_AA = ev.fock(A, A, s)
            g1 = self.rdm1(s)
            I = self._I_twobody(s, p_a, p_b)
            blocks.append(numpy.kron(g1, F_AA.T) - numpy.kron(I, numpy.eye(nX)))
            rhs.append(-numpy.dot(g1, F_pA).ravel())
            terms.append((F_pA, g1, no, nX))
        if not blocks:
            return 0.
        H0 = scipy.linalg.block_diag(*blocks)
        self._check_h0(H0, log)
        t = scipy.linalg.solve(H0, numpy.hstack(rhs))
        e = 0.
        off = 0
        for F_pA, g1, no, nX in terms:
            t_s = t[off:off+no*nX].reshape(no, nX)
            e += numpy.einsum('iA,ij,jA->', F_pA, g1, t_s)
            off += no * nX
        log.debug('CABS singles (two-body H0): %.15g', e)
        return e

    def compute_cabs_singles(self):
        if self.cabs_singles_h0 == 'complete':
            return self.energy_cabs_singles_twobody_H0()
        e = self.energy_cabs_singles(spincase.Alpha)
        if self.spin_polarized:
            e += self.energy_cabs_singles(spincase.Beta)
        else:
            e *= 2
        return e

    # diagnostics
    def energy_recomputed_from_densities(self):
        '''Reference energy from the RDMs and the integrals of the world'''
        ints = self.world.ints
        e1 = 0.
        for s in (spincase.Alpha, spincase.Beta):
            p = self.rdm_space(s)
            e1 += numpy.einsum('ij,ji', ints.hcore(p, p), self.rdm1(s))
        e2 = 0.
        for S in spincase.SpinCase2:
            p1 = self.rdm_space(spincase.case1(S))
            p2 = self.rdm_space(spincase.case2(S))
            G = self.g(S, p1, p2, p1, p2)
            e2 += numpy.einsum('ij,ji', G, self.rdm2(S))
        return e1 + e2 + self.mol.energy_nuc()

    def brillouin_matrix(self):
        '''Generalized Brillouin condition residual K + M over (orbs, rdm
        space), per spin'''
        log = logger.new_logger(self)
        ev = self.r12eval
        ref = self.ref
        out = [None, None]
        full = {}
        occ = {}
        for s in (spincase.Alpha, spincase.Beta):
            full[s] = ev.orbs(s)
            occ[s] = self.rdm_space(s)
        lam_ab = ref.cumulant_full(spincase.AlphaBeta)
        g_ab = self.g_full(spincase.AlphaBeta, full[0], occ[1], occ[0], occ[1])
        for s in spincase.unique_spincases1(self.spin_polarized):
            pspace = full[s]
            m2p = index_map(occ[s], pspace)
            gamma = self.rdm1(s)
            fock = ev.fock(pspace, pspace, s)
            K = numpy.zeros((pspace.rank, occ[s].rank))
            K[:] = reduce(numpy.dot, (fock[:,m2p], gamma))
            K[m2p] -= reduce(numpy.dot, (gamma, fock[numpy.ix_(m2p, m2p)], gamma))

            same = spincase.case12(s, s)
            g_ss = self.g_full(same, pspace, occ[s], occ[s], occ[s])
            M = .5 * lib.einsum('qruv,uvpr->qp', g_ss, ref.cumulant_full(same))
            if s == spincase.Alpha:
                M += lib.einsum('qruv,uvpr->qp', g_ab, lam_ab)
            else:
                g_ba = self.g_full(spincase.AlphaBeta, occ[0], full[1],
                                   occ[0], occ[1])
                M += lib.einsum('rqvu,vurp->qp', g_ba, lam_ab)
            if log.verbose >= logger.DEBUG:
                log.debug('Brillouin matrix %s', spincase.to_string(s))
                log.debug("K =\n%s", K)
                log.debug("M =\n%s", M)
            out[s] = K + M
        return spincase.alias_beta(out, self.spin_polarized)

    def kernel(self):
        self.check_sanity()
        self.dump_flags()
        log = logger.new_logger(self)
        cput0 = (logger.process_clock(), logger.perf_counter())
        self.e_ref = self.ref.energy()
        e_pairs = [numpy.zeros(0)] * 3
        e_pt2r12 = [0.] * 3
        if self.pt2_correction:
            for S in spincase.unique_spincases2(self.spin_polarized):
                e_pairs[S] = self.energy_PT2R12(S)
                e_pt2r12[S] = e_pairs[S].sum()
            spincase.alias_betabeta(e_pairs, self.spin_polarized)
            spincase.alias_betabeta(e_pt2r12, self.spin_polarized)
        self.e_pt2r12_pairs = e_pairs
        self.e_pt2r12 = e_pt2r12
        self.e_cabs_singles = 0.
        if self.cabs_singles:
            self.e_cabs_singles = self.compute_cabs_singles()
        self.e_tot = self.e_ref + sum(e_pt2r12) + self.e_cabs_singles
        log.timer('PT2R12', *cput0)
        self._finalize()
        return self.e_tot

    def _finalize(self):
        log = logger.new_logger(self)
        AB, AA, BB = spincase.AlphaBeta, spincase.AlphaAlpha, spincase.BetaBeta
        e = self.e_pt2r12
        log.note('E(ref)                    = %.15g', self.e_ref)
        if log.verbose >= logger.DEBUG:
            log.debug('E(ref) recomputed         = %.15g',
                      self.energy_recomputed_from_densities())
        log.note('Alpha-beta [2]_R12 energy = %.15g', e[AB])
        log.note('Alpha-alpha [2]_R12 energy = %.15g', e[AA])
        if self.spin_polarized:
            log.note('Beta-beta [2]_R12 energy  = %.15g', e[BB])
        else:
            log.note('Singlet [2]_R12 energy    = %.15g', e[AB] - e[AA])
            log.note('Triplet [2]_R12 energy    = %.15g', 3 * e[AA])
        log.note('[2]_R12 energy            = %.15g', sum(e))
        if self.cabs_singles:
            log.note('CABS singles energy       = %.15g', self.e_cabs_singles)
        log.note('E(tot)                    = %.15g', self.e_tot)
        return self
