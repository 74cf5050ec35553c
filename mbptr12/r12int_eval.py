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
R12 intermediates

R12IntEval evaluates, per spin case, the intermediates of explicitly
correlated second-order methods

    V(kl,ij) = <kl|f Q12 g|ij>
    X(kl,mn) = <kl|f Q12 f|mn>
    B(kl,mn) = <kl|f Q12 [F1+F2, Q12 f]|mn>  (in a standard approximation)
    A(kl,ab) = <kl|f Q12 [F1+F2, 1]|ab>      (coupling of geminals and doubles)

where f is the correlation factor, g = 1/r12 and Q12 the projector of the
ansatz.  Rows are (geminal function, GG pair), the ket of V runs over gg
pairs.  Opposite-spin tensors are rectangular over pairs, same-spin tensors
are packed over i > j.  For a spin-restricted reference only the
opposite-spin tensors are computed; the AlphaAlpha ones are obtained by
antisymmetrizing them and the BetaBeta slot is the same object as the
AlphaAlpha slot.

Refs:
* Valeev, CPL 395, 190 (2004); DOI:10.1016/j.cplett.2004.07.061
* Kedzuch, Milko, Noga, IJQC 105, 929 (2005)
* Torheyden, Valeev, JCP 131, 171103 (2009)
'''

from functools import reduce
import numpy
from pyscf import lib
from pyscf.lib import logger
from mbptr12 import spin as spincase
from mbptr12 import pairindex
from mbptr12 import parallel
from mbptr12 import corrfactor as cf
from mbptr12 import xgen
from mbptr12 import bapprox
from mbptr12.errors import ProgrammingError
from mbptr12.orbitalspace import OrbitalSpace
from mbptr12.tbint_tensor import compute_tbint_tensor

# one-body operators of the weighted spaces: (scale_J, scale_K, scale_H)
FOCK_SCALES = {
    'h':  (0., 0., 1.),
    'J':  (1., 0., 0.),
    'hJ': (1., 0., 1.),
    'K':  (0., -1., 0.),
    'F':  (1., 1., 1.),
}
DENSITY_OPERS = ('gamma', 'Fgamma', 'gammaFgamma')


def amplitudes_to_vector(t1):
    return t1.ravel()

def vector_to_amplitudes(vector, nocc):
    nx = len(vector) // nocc
    return vector.copy().reshape((nocc, nx))


def get_cabs_singles(mo_energy, fPQ, nocc, nmo, log, max_cycle=300,
                     conv_tol=1e-10):
    '''Singles into the CABS with a non-diagonal Fock matrix, solved
    iteratively.

    fPQ is the Fock matrix over the MOs followed by the CABS.  Returns the
    energy of one spin.
    '''
    ncabs = fPQ.shape[0] - nmo
    if nocc == 0 or ncabs == 0:
        return 0.
    inv_e_ai = 1. / (mo_energy[nocc:nmo,None] - mo_energy[None,:nocc])
    e_cabs = fPQ.diagonal()[nmo:]
    inv_e_ic = 1. / (mo_energy[:nocc,None] - e_cabs[None,:])
    f_oc = fPQ[:nocc,nmo:]
    f_vc = fPQ[nocc:nmo,nmo:]
    f_ov = fPQ[:nocc,nocc:nmo]
    f_oo = fPQ[:nocc,:nocc]
    f_cc = fPQ[nmo:,nmo:]
    f_wig = f_oc - lib.einsum('ac,ai,ia->ic', f_vc, inv_e_ai, f_ov)
    t_s = f_wig * inv_e_ic
    e_old = numpy.inf
    e_new = lib.einsum('ic,ic->', f_wig, t_s)
    adiis = lib.diis.DIIS()
    adiis.space = 10
    diff_t = 1.
    cycle = 0
    while (abs(e_new - e_old) > conv_tol or diff_t > conv_tol) and cycle < max_cycle:
        cycle += 1
        e_old = e_new
        t_new = numpy.dot(t_s, f_cc) - t_s * f_cc.diagonal()
        t_new -= numpy.dot(f_oo, t_s) - f_oo.diagonal()[:,None] * t_s
        t_new -= lib.einsum('ac,ai,da,id->ic', f_vc, inv_e_ai, f_vc.T, t_s)
        t_new += f_wig
        t_new *= inv_e_ic
        t_new = vector_to_amplitudes(adiis.update(amplitudes_to_vector(t_new)), nocc)
        diff_t = numpy.linalg.norm(t_new - t_s)
        t_s = t_new
        e_new = lib.einsum('ic,ic->', f_wig, t_s)
        log.debug1('CABS singles cycle %d  E = %.15g  dE = %.3g  |dt| = %.3g',
                   cycle, e_new, e_new - e_old, diff_t)
    if cycle == max_cycle:
        log.warn('CABS singles not converged in %d cycles', max_cycle)
    return e_new


class R12IntEval(lib.StreamObject):
    '''Orchestrates the construction of V, X, B, BB and A.

    Attributes:
        world : R12WavefunctionWorld
        group : message group of the distributed loops

    Saved results

        evaluated : bool
        emp2_pairs : list
            MP2 pair energies per spin case
    '''
    def __init__(self, world, group=None):
        self.world = world
        self.mol = world.mol
        self.verbose = world.verbose
        self.stdout = world.stdout
        self.max_memory = world.max_memory
        self.r12tech = world.r12tech
        self.corrfactor = world.r12tech.factor()
        if group is None:
            group = parallel.get_default_group()
        self.group = group

##################################################
# don't modify the following attributes, they are not input options
        self.evaluated = False
        self.emp2_pairs = None
        self._weighted = {}
        self._V = self._X = self._B = self._BB = self._A = None
        self._emp2_singles = None
        self._emp2_cabs_singles = None
        self._keys = set(self.__dict__.keys())
        self.init_intermeds()

    @property
    def spin_polarized(self):
        return self.world.spin_polarized

    def dump_flags(self, verbose=None):
        log = logger.new_logger(self, verbose)
        self.world.dump_flags(verbose)
        log.info('')
        log.info('******** %s ********', self.__class__.__name__)
        for S in spincase.unique_spincases2(self.spin_polarized):
            log.info('%s: dim_GG = %d  dim_gg = %d  dim_f12 = %d  dim_vv = %d',
                     spincase.to_string(S), self.dim_GG(S), self.dim_gg(S),
                     self.dim_f12(S), self.dim_vv(S))
        log.info('RI in ABS = %s', self.do_ri_in_abs())
        log.info('message group: %d processes', self.group.n())
        return self

    # orbital spaces
    def occ(self, spin=spincase.Alpha):
        return self.world.occ(spin)

    def occ_act(self, spin=spincase.Alpha):
        return self.world.occ_act(spin)

    def vir(self, spin=spincase.Alpha):
        return self.world.vir(spin)

    def vir_act(self, spin=spincase.Alpha):
        return self.world.vir_act(spin)

    def orbs(self, spin=spincase.Alpha):
        return self.world.orbs(spin)

    def ribs(self, spin=spincase.Alpha):
        return self.world.ribs(spin)

    def cabs(self, spin=spincase.Alpha):
        return self.world.cabs(spin)

    def GGspace(self, spin=spincase.Alpha):
        '''Orbitals that generate the geminals'''
        if self.r12tech.orbital_product_GG == 'pq':
            return self.orbs(spin)
        return self.occ_act(spin)

    def ggspace(self, spin=spincase.Alpha):
        '''Orbitals of the pairs the geminals are coupled to'''
        if self.r12tech.orbital_product_gg == 'pq':
            return self.orbs(spin)
        return self.occ_act(spin)

    def space(self, kind, spin=spincase.Alpha):
        '''Orbital space by kind: occ, occ_act, vir, vir_act, orbs, ribs,
        cabs, GG, gg'''
        if kind == 'GG':
            return self.GGspace(spin)
        elif kind == 'gg':
            return self.ggspace(spin)
        return getattr(self, kind)(spin)

    # dimensions
    def _pair_dim(self, kind, S):
        s1 = self.space(kind, spincase.case1(S))
        s2 = self.space(kind, spincase.case2(S))
        return pairindex.pair_dim(s1.rank, s2.rank, S)

    def dim_oo(self, S):
        return self._pair_dim('occ_act', S)

    def dim_vv(self, S):
        return self._pair_dim('vir_act', S)

    def dim_GG(self, S):
        return self._pair_dim('GG', S)

    def dim_gg(self, S):
        return self._pair_dim('gg', S)

    def dim_f12(self, S):
        return self.corrfactor.nfunctions * self.dim_GG(S)

    def coupling_active(self):
        return self.r12tech.coupling and not self.r12tech.gbc

    def spincases2(self):
        '''Spin cases computed directly'''
        if self.spin_polarized:
            return spincase.unique_spincases2(True)
        return [spincase.AlphaBeta]

    def init_intermeds(self):
        '''Zero-filled intermediates of the final dimensions'''
        V = [None] * 3
        X = [None] * 3
        B = [None] * 3
        BB = [None] * 3
        A = [None] * 3
        for S in spincase.unique_spincases2(self.spin_polarized):
            nf12 = self.dim_f12(S)
            V[S] = numpy.zeros((nf12, self.dim_gg(S)))
            X[S] = numpy.zeros((nf12, nf12))
            B[S] = numpy.zeros((nf12, nf12))
            BB[S] = numpy.zeros((nf12, nf12))
            if self.coupling_active():
                A[S] = numpy.zeros((nf12, self.dim_vv(S)))
            else:
                A[S] = numpy.zeros((nf12, 0))
        # BetaBeta shares the AlphaAlpha storage of a restricted reference
        self._V = spincase.alias_betabeta(V, self.spin_polarized)
        self._X = spincase.alias_betabeta(X, self.spin_polarized)
        self._B = spincase.alias_betabeta(B, self.spin_polarized)
        self._BB = spincase.alias_betabeta(BB, self.spin_polarized)
        self._A = spincase.alias_betabeta(A, self.spin_polarized)
        emp2 = [None] * 3
        for S in spincase.unique_spincases2(self.spin_polarized):
            emp2[S] = numpy.zeros(self.dim_oo(S))
        self.emp2_pairs = spincase.alias_betabeta(emp2, self.spin_polarized)
        return self

    def obsolete(self):
        '''Forget all intermediates; the next request recomputes them'''
        self.evaluated = False
        self._weighted.clear()
        self.world.obsolete()
        self._emp2_singles = None
        self._emp2_cabs_singles = None
        self.init_intermeds()
        return self

    # accessors
    def V(self, S):
        self.compute()
        return self._V[S]

    def X(self, S):
        self.compute()
        return self._X[S]

    def B(self, S):
        self.compute()
        return self._B[S]

    def BB(self, S):
        '''Exchange part of B in approximation B'''
        if self.r12tech.stdapprox != 'B':
            raise ProgrammingError('BB requested but the standard '
                                   'approximation is %s'
                                   % self.r12tech.stdapprox, 'R12IntEval.BB')
        self.compute()
        return self._BB[S]

    def A(self, S):
        '''Coupling matrix; (dim_f12, 0) unless coupling is active'''
        self.compute()
        return self._A[S]

    def emp2(self, S):
        self.compute()
        return self.emp2_pairs[S]

    # integrals
    def fock(self, space1, space2, spin=spincase.Alpha, scale_J=1., scale_K=1.,
             scale_H=1.):
        return self.world.fock(space1, space2, spin, scale_J, scale_K, scale_H)

    def get_tform(self, key):
        return self.world.tfactory.get(key)

    def add_tform(self, tform):
        return self.world.tfactory.add(tform)

    def tform(self, oper, space1, space2, space3, space4, f1=0, f2=0):
        '''Transform (s1 s2|op|s3 s4) = <s1 s3|op|s2 s4>, created on demand'''
        reg = self.world.registry
        spaces = [reg.add(s) for s in (space1, space2, space3, space4)]
        spec = self.corrfactor.tbint_spec(oper, f1, f2)
        label = self.corrfactor.oper_label(oper, f1, f2)
        key = self.world.tfactory.create(oper, spec, label, *spaces)
        return self.get_tform(key)

    def tforms(self, oper, bra1, ket1, bra2, ket2, nfb=1, nfk=1):
        '''Transforms of <bra1 bra2|op|ket1 ket2>, element fb*nfk+fk.  f12
        and f12eri carry a single function, of the bra or of the ket.'''
        out = []
        for fb in range(nfb):
            for fk in range(nfk):
                if oper == cf.ERI:
                    out.append(self.tform(oper, bra1, ket1, bra2, ket2))
                elif oper in (cf.F12, cf.F12ERI):
                    out.append(self.tform(oper, bra1, ket1, bra2, ket2, fb+fk))
                else:
                    out.append(self.tform(oper, bra1, ket1, bra2, ket2, fb, fk))
        return out

    def f12_tforms(self, bra1, ket1, bra2, ket2):
        nf = self.corrfactor.nfunctions
        return [self.tform(cf.F12, bra1, ket1, bra2, ket2, f) for f in range(nf)]

    def eri_tforms(self, bra1, ket1, bra2, ket2):
        return [self.tform(cf.ERI, bra1, ket1, bra2, ket2)]

    # weighted spaces
    def f_bra_ket(self, spin, oper, ext_kind, int_kind):
        '''Orbitals of kind ext_kind, each transformed by a one-body operator
        and expanded in the orbitals of kind int_kind:

            |op x> = sum_y |y> <y|op|x>,  x in ext, y in int

        oper is one of h, J, hJ, K, F (Fock operators of the reference) or
        gamma, Fgamma, gammaFgamma (1-RDM dressed).  The spaces are memoized
        and registered.
        '''
        key = (spin, oper, ext_kind, int_kind)
        if key in self._weighted:
            return self._weighted[key]
        ext = self.space(ext_kind, spin)
        intspace = self.space(int_kind, spin)
        mat = self.oper_matrix(oper, intspace, ext, spin)
        coefs = numpy.dot(intspace.coefs, mat)
        space = OrbitalSpace('%s_%s(%s)' % (ext.id, oper, intspace.id),
                             '%s-weighted %s' % (oper, ext.name), coefs,
                             intspace.basis, ext.energies)
        space = self.world.registry.add(space)
        self._weighted[key] = space
        return space

    def oper_matrix(self, oper, space1, space2, spin=spincase.Alpha):
        '''<space1|op|space2>'''
        if oper in FOCK_SCALES:
            scale_J, scale_K, scale_H = FOCK_SCALES[oper]
            return self.fock(space1, space2, spin, scale_J, scale_K, scale_H)
        if oper not in DENSITY_OPERS:
            raise ProgrammingError('unknown one-body operator %s' % oper,
                                   'R12IntEval.oper_matrix')
        ref = self.world.ref
        rdm = ref.rdm_space(spin)
        gamma = ref.rdm1(spin)
        ints = self.world.ints
        if oper == 'gamma':
            return reduce(numpy.dot, (ints.ovlp(space1, rdm), gamma,
                                      ints.ovlp(rdm, space2)))
        elif oper == 'Fgamma':
            return reduce(numpy.dot, (self.fock(space1, rdm, spin), gamma,
                                      ints.ovlp(rdm, space2)))
        else:
            return reduce(numpy.dot, (ints.ovlp(space1, rdm), gamma,
                                      self.fock(rdm, rdm, spin), gamma,
                                      ints.ovlp(rdm, space2)))

    def do_ri_in_abs(self, nabs=0):
        '''Whether RI terms beyond the OBS are needed, given nabs RI indices
        already present in the bra or ket'''
        maxnabs = self.r12tech.maxnabs
        if nabs > maxnabs:
            raise ProgrammingError('%d RI indices requested, maxnabs = %d'
                                   % (nabs, maxnabs), 'R12IntEval')
        return (not self.world.abs_eq_obs()) and maxnabs - nabs > 0

    # one-electron reducible intermediates
    def compute_I_(self, bra1, bra2, ket1, ket2):
        '''I(mn,ij) = <m|i><n|j>, rectangular.  Only process 0 keeps the
        result.'''
        ints = self.world.ints
        s1 = ints.ovlp(bra1, ket1)
        s2 = ints.ovlp(bra2, ket2)
        n1, n2 = bra1.rank, bra2.rank
        I = numpy.zeros((n1*n2, ket1.rank*ket2.rank))
        for mn in parallel.round_robin(n1*n2, self.group):
            m, n = divmod(mn, n2)
            I[mn] = numpy.outer(s1[m], s2[n]).ravel()
        return parallel.globally_sum_scmatrix(I, self.group)

    def compute_r2_(self, bra1, bra2, ket1, ket2):
        '''<mn|r12^2|ij> from multipole integrals, rectangular.  Only process
        0 keeps the result.'''
        ints = self.world.ints
        s1 = ints.ovlp(bra1, ket1)
        s2 = ints.ovlp(bra2, ket2)
        d1, q1 = ints.multipoles(bra1, ket1)
        d2, q2 = ints.multipoles(bra2, ket2)
        r2_1 = q1[0,0] + q1[1,1] + q1[2,2]
        r2_2 = q2[0,0] + q2[1,1] + q2[2,2]
        n1, n2 = bra1.rank, bra2.rank
        R = numpy.zeros((n1*n2, ket1.rank*ket2.rank))
        for mn in parallel.round_robin(n1*n2, self.group):
            m, n = divmod(mn, n2)
            blk = numpy.outer(r2_1[m], s2[n]) + numpy.outer(s1[m], r2_2[n])
            for x in range(3):
                blk -= 2 * numpy.outer(d1[x,m], d2[x,n])
            R[mn] = blk.ravel()
        return parallel.globally_sum_scmatrix(R, self.group)

    def pair_spaces(self, kind, S):
        return (self.space(kind, spincase.case1(S)),
                self.space(kind, spincase.case2(S)))

    # evaluation
    def compute(self):
        if self.evaluated:
            return self
        log = logger.new_logger(self)
        cput0 = (logger.process_clock(), logger.perf_counter())
        self.init_intermeds()
        kind = self.corrfactor.kind
        tech = self.r12tech
        for S in self.spincases2():
            log.debug('R12 intermediates, %s', spincase.to_string(S))
            nf12 = self.corrfactor.nfunctions
            GG1, GG2 = self.pair_spaces('GG', S)
            gg1, gg2 = self.pair_spaces('gg', S)
            nrow = nf12 * GG1.rank * GG2.rank
            Vr = numpy.zeros((nrow, gg1.rank*gg2.rank))
            Xr = numpy.zeros((nrow, nrow))
            Br = numpy.zeros((nrow, nrow))
            BBr = numpy.zeros((nrow, nrow))
            Ar = None
            if kind == cf.R12:
                Vr += self.compute_I_(GG1, GG2, gg1, gg2)
                Xr += self.compute_r2_(GG1, GG2, GG1, GG2)
                Br += self.compute_I_(GG1, GG2, GG1, GG2)
                log.warn('No two-electron r12 integrals: R12 intermediates '
                         'without RI corrections')
            elif kind == cf.G12:
                xgen.compute_V_(self, Vr, S)
                xgen.compute_X_(self, Xr, S)
                if not tech.omit_B:
                    bapprox.compute_B_(self, Br, BBr, Xr, S)
                if self.coupling_active():
                    if tech.orbital_product_gg != 'ij':
                        raise ProgrammingError('coupling requires ij gg pairs',
                                               'R12IntEval.compute')
                    Ar = bapprox.compute_A_(self, S)
                    Vr += numpy.dot(Ar, self.T2_rect(S))
            if kind == cf.R12 and not tech.omit_B:
                bapprox.compute_B_onebody_(self, Br, Xr, S)

            self._accumulate(self._V, Vr, S, gg=True)
            self._accumulate(self._X, Xr, S)
            self._accumulate(self._B, Br, S)
            self._accumulate(self._BB, BBr, S)
            if Ar is not None:
                self._accumulate(self._A, Ar, S, vv=True)
            self.emp2_pairs[S] += self.compute_emp2_(S)
        if not self.spin_polarized:
            AA = spincase.AlphaAlpha
            self.emp2_pairs[AA] += self.compute_emp2_(AA)

        self.globally_sum_intermeds(to_all=True)
        if not self.spin_polarized:
            self._derive_samespin()
        for S in spincase.unique_spincases2(self.spin_polarized):
            for store in (self._X, self._B, self._BB):
                store[S][:] = pairindex.to_lower_triangle(store[S])
        self.evaluated = True
        log.timer('R12 intermediates', *cput0)
        return self

    def _accumulate(self, store, rect, S, gg=False, vv=False):
        '''Add a rectangular tensor to the stored one of spin case S'''
        if S == spincase.AlphaBeta:
            store[S] += rect
            return store[S]
        GG1, GG2 = self.pair_spaces('GG', S)
        if gg:
            k1, k2 = self.pair_spaces('gg', S)
        elif vv:
            k1, k2 = self.pair_spaces('vir_act', S)
        else:
            k1, k2 = GG1, GG2
        store[S] += pairindex.antisymmetrize(rect, GG1.rank, GG2.rank,
                                             k1.rank, k2.rank)
        return store[S]

    def _derive_samespin(self):
        '''AlphaAlpha from AlphaBeta of a restricted reference'''
        AA = spincase.AlphaAlpha
        AB = spincase.AlphaBeta
        nG = self.GGspace().rank
        ng = self.ggspace().rank
        nv = self.vir_act().rank
        self._V[AA][:] = pairindex.antisymmetrize(self._V[AB], nG, nG, ng, ng)
        for store in (self._X, self._B, self._BB):
            store[AA][:] = pairindex.antisymmetrize(store[AB], nG, nG, nG, nG)
        if self._A[AB].shape[1] > 0:
            self._A[AA][:] = pairindex.antisymmetrize(self._A[AB], nG, nG, nv, nv)

    def globally_sum_intermeds(self, to_all=False):
        group = self.group
        for S in spincase.unique_spincases2(self.spin_polarized):
            for store in (self._V, self._X, self._B, self._BB, self._A):
                parallel.globally_sum_scmatrix(store[S], group, to_all)
            parallel.globally_sum_scvector(self.emp2_pairs[S], group, to_all)
        return self

    # MP2
    def ovov_(self, S):
        '''<ij|ab> over active occupied and active virtual pairs.  Only the
        rows of the pairs owned by this process are filled.'''
        i1, i2 = self.pair_spaces('occ_act', S)
        a1, a2 = self.pair_spaces('vir_act', S)
        if S == spincase.AlphaBeta or self.spin_polarized:
            T = numpy.zeros((self.dim_oo(S), self.dim_vv(S)))
            tforms = self.eri_tforms(i1, a1, i2, a2)
            return compute_tbint_tensor(T, cf.ERI, i1, i2, a1, a2,
                                        S != spincase.AlphaBeta, tforms,
                                        self.group)
        ab = self.ovov_(spincase.AlphaBeta)
        return pairindex.antisymmetrize(ab, i1.rank, i2.rank, a1.rank, a2.rank)

    def _denominators(self, S):
        i1, i2 = self.pair_spaces('occ_act', S)
        a1, a2 = self.pair_spaces('vir_act', S)
        e_ij = lib.direct_sum('i+j->ij', i1.energies, i2.energies)
        e_ab = lib.direct_sum('a+b->ab', a1.energies, a2.energies)
        if S != spincase.AlphaBeta:
            i, j = pairindex.tril_pairs(i1.rank)
            a, b = pairindex.tril_pairs(a1.rank)
            e_ij = e_ij[i,j]
            e_ab = e_ab[a,b]
        return e_ij.ravel()[:,None] - e_ab.ravel()[None,:]

    def T2_rect(self, S):
        '''MP2 amplitudes T2(ab,ij) over rectangular pairs of S'''
        i1, i2 = self.pair_spaces('occ_act', S)
        a1, a2 = self.pair_spaces('vir_act', S)
        T = numpy.zeros((i1.rank*i2.rank, a1.rank*a2.rank))
        compute_tbint_tensor(T, cf.ERI, i1, i2, a1, a2, False,
                             self.eri_tforms(i1, a1, i2, a2), self.group)
        T = parallel.globally_sum(T, self.group, to_all=True)
        e_ij = lib.direct_sum('i+j->ij', i1.energies, i2.energies).ravel()
        e_ab = lib.direct_sum('a+b->ab', a1.energies, a2.energies).ravel()
        return (T / (e_ij[:,None] - e_ab[None,:])).T

    def T2(self, S):
        '''MP2 amplitudes over the pairs of S (packed for same spin)'''
        ovov = parallel.globally_sum(self.ovov_(S), self.group, to_all=True)
        if ovov.size == 0:
            return ovov.T
        return (ovov / self._denominators(S)).T

    def compute_emp2_(self, S):
        if self.dim_oo(S) == 0:
            return numpy.zeros(0)
        ovov = self.ovov_(S)
        if ovov.size == 0:
            return numpy.zeros(self.dim_oo(S))
        return numpy.einsum('ia,ia->i', ovov, ovov / self._denominators(S))

    def emp2_obs_singles(self):
        '''Singles in the OBS, nonzero only without the Brillouin condition'''
        if self._emp2_singles is None:
            e = 0.
            ref = self.world.ref
            if self.world.sdref() and not ref.bc:
                for s in spincase.unique_spincases1(True):
                    o = self.occ_act(s)
                    v = self.vir_act(s)
                    f = self.fock(o, v, s)
                    de = o.energies[:,None] - v.energies[None,:]
                    e += numpy.sum(f**2 / de)
            self._emp2_singles = e
        return self._emp2_singles

    def emp2_cabs_singles(self):
        '''Singles into the CABS, iterated with the full Fock matrix'''
        if self._emp2_cabs_singles is None:
            log = logger.new_logger(self)
            e = 0.
            for s in spincase.unique_spincases1(self.spin_polarized):
                occ = self.occ(s)
                cabs = self.cabs(s)
                orbs = self.orbs(s)
                basis = cabs.basis.union(orbs.basis)
                p = OrbitalSpace('mo+cabs', 'MOs and CABS',
                                 numpy.hstack((orbs.coefs_in(basis),
                                               cabs.coefs_in(basis))), basis)
                fPQ = self.fock(p, p, s)
                e_s = get_cabs_singles(orbs.energies, fPQ, occ.rank, orbs.rank, log)
                log.debug('CABS singles %s: %.15g', spincase.to_string(s), e_s)
                e += e_s
            if not self.spin_polarized:
                e *= 2
            self._emp2_cabs_singles = e
        return self._emp2_cabs_singles
