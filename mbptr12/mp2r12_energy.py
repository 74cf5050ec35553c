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
MP2-R12 pair energies

For each pair ij of the gg space the Hylleraas functional of the geminal
amplitudes c(ij) is

    e(ij) = 2 c.V(ij) + c.(B - (e_i + e_j) X).c

The amplitudes are either fixed by the cusp conditions (SP ansatz,
Ten-no, JCP 121, 117 (2004)) or obtained by minimizing e(ij).  With the
coupling of geminals and conventional doubles active the doubles are
eliminated, which adds A (e_ij - e_ab)^-1 A^T to B.
'''

import numpy
import scipy.linalg
from pyscf import lib
from pyscf.lib import logger
from pyscf import __config__
from mbptr12 import spin as spincase
from mbptr12 import pairindex
from mbptr12.errors import ProgrammingError
from mbptr12.orbitalspace import index_map

FULLOPT = getattr(__config__, 'mbptr12_fullopt', False)


class CuspConsistentGeminalCoefficient(object):
    '''Amplitudes that make the first geminal function satisfy the
    singlet (1/2) and triplet (1/4) cusp conditions.

    Opposite-spin amplitudes over rectangular pairs are 3/8 for kl = ij and
    1/8 for kl = ji; their antisymmetrized form is 1/4 for same-spin pairs.
    '''
    def __init__(self, S, corrfactor):
        self.spincase = S
        self.corrfactor = corrfactor

    def C(self, O, W, P, Q, f=0):
        if f != 0:
            return 0.
        scale = self.corrfactor.cusp_scale(f)
        if self.spincase == spincase.AlphaBeta:
            c = 0.
            if O == P and W == Q:
                c += 3./8
            if O == Q and W == P:
                c += 1./8
            return c * scale
        if O == P and W == Q:
            return .25 * scale
        if O == Q and W == P:
            return -.25 * scale
        return 0.

    def matrix(self, map1, map2, nG1, nG2):
        '''Amplitudes C(f GG, gg); map1/map2 give the GG index of each gg
        orbital of particle 1/2'''
        nf = self.corrfactor.nfunctions
        ng1, ng2 = len(map1), len(map2)
        C = numpy.zeros((nf, nG1, nG2, ng1, ng2))
        scale = self.corrfactor.cusp_scale(0)
        for P in range(ng1):
            for Q in range(ng2):
                C[0,map1[P],map2[Q],P,Q] += 3./8 * scale
                if map2[Q] < nG1 and map1[P] < nG2:
                    C[0,map2[Q],map1[P],P,Q] += 1./8 * scale
        C = C.reshape(nf*nG1*nG2, ng1*ng2)
        if self.spincase == spincase.AlphaBeta:
            return C
        return pairindex.antisymmetrize(C, nG1, nG2, ng1, ng2)


def geminal_coefficients(r12eval, S):
    '''Cusp-consistent amplitudes of spin case S over the pairs of
    r12eval'''
    s1, s2 = spincase.case1(S), spincase.case2(S)
    G1, G2 = r12eval.GGspace(s1), r12eval.GGspace(s2)
    g1, g2 = r12eval.ggspace(s1), r12eval.ggspace(s2)
    gen = CuspConsistentGeminalCoefficient(S, r12eval.corrfactor)
    return gen.matrix(index_map(g1, G1), index_map(g2, G2), G1.rank, G2.rank)


def pair_energy_sums(r12eval, S, kind='gg'):
    '''e_i + e_j over the pairs of kind, packed for same spin'''
    s1, s2 = r12eval.pair_spaces(kind, S)
    e = lib.direct_sum('i+j->ij', s1.energies, s2.energies)
    if S != spincase.AlphaBeta:
        i, j = pairindex.tril_pairs(s1.rank)
        return e[i,j]
    return e.ravel()


class R12EnergyIntermediates(object):
    '''The intermediates an R12 energy is evaluated from, with the standard
    approximation they were computed in'''
    def __init__(self, r12eval, stdapprox=None):
        self.r12eval = r12eval
        if stdapprox is None:
            stdapprox = r12eval.r12tech.stdapprox
        self.stdapprox = stdapprox

    @property
    def spin_polarized(self):
        return self.r12eval.spin_polarized

    def V(self, S):
        return self.r12eval.V(S)

    def X(self, S):
        return self.r12eval.X(S)

    def B(self, S):
        return self.r12eval.B(S)

    def A(self, S):
        return self.r12eval.A(S)

    def coupling(self):
        return self.r12eval.coupling_active()


class MP2R12Energy(lib.StreamObject):
    '''MP2-R12 energy from R12 intermediates.

    Attributes:
        fullopt : bool
            Optimize the geminal amplitudes instead of fixing them by the
            cusp conditions.

    Saved results

        ef12_pairs : list
            R12 pair energies per spin case
        e_corr : float
            MP2-R12 correlation energy
    '''
    fullopt = FULLOPT

    def __init__(self, r12intermeds, fullopt=None):
        if not isinstance(r12intermeds, R12EnergyIntermediates):
            r12intermeds = R12EnergyIntermediates(r12intermeds)
        self.r12intermeds = r12intermeds
        self.r12eval = r12intermeds.r12eval
        self.mol = self.r12eval.mol
        self.verbose = self.mol.verbose
        self.stdout = self.mol.stdout
        if fullopt is not None:
            self.fullopt = fullopt

##################################################
# don't modify the following attributes, they are not input options
        self.evaluated = False
        self.ef12_pairs = None
        self.e_corr = None
        self._C = [None] * 3
        self._keys = set(self.__dict__.keys())

    @property
    def spin_polarized(self):
        return self.r12eval.spin_polarized

    def dump_flags(self, verbose=None):
        log = logger.new_logger(self, verbose)
        log.info('')
        log.info('******** %s ********', self.__class__.__name__)
        log.info('standard approximation = %s', self.r12intermeds.stdapprox)
        log.info('amplitudes = %s',
                 'optimized' if self.fullopt else 'cusp-consistent (fixed)')
        log.info('coupling = %s', self.r12intermeds.coupling())
        return self

    def check_sanity(self):
        if self.r12eval.r12tech.orbital_product_gg != 'ij':
            raise ProgrammingError('MP2-R12 pair energies require ij gg pairs',
                                   'MP2R12Energy')
        return lib.StreamObject.check_sanity(self)

    def obsolete(self):
        self.evaluated = False
        self.ef12_pairs = None
        self.e_corr = None
        self._C = [None] * 3
        self.r12eval.obsolete()
        return self

    def C(self, S):
        '''Geminal amplitudes C(f GG, gg) of spin case S'''
        self.compute()
        return self._C[S]

    def _coupling_term(self, S):
        '''A diag(1/(e_ij - e_ab)) A^T per ij, as (A, 1/(e_ij - e_ab))'''
        A = self.r12intermeds.A(S)
        if not self.r12intermeds.coupling() or A.shape[1] == 0:
            return None, None
        e_ab = pair_energy_sums(self.r12eval, S, 'vir_act')
        e_ij = pair_energy_sums(self.r12eval, S, 'gg')
        return A, 1. / (e_ij[:,None] - e_ab[None,:])

    def compute_pairs(self, S):
        '''Pair energies and amplitudes of spin case S'''
        ints = self.r12intermeds
        V = ints.V(S)
        X = ints.X(S)
        B = ints.B(S)
        e_ij = pair_energy_sums(self.r12eval, S, 'gg')
        A, inv_d = self._coupling_term(S)
        npair = V.shape[1]
        if self.fullopt:
            C = numpy.zeros_like(V)
            for ij in range(npair):
                Bij = B - e_ij[ij] * X
                if A is not None:
                    Bij = Bij + numpy.dot(A * inv_d[ij], A.T)
                C[:,ij] = scipy.linalg.solve(Bij, -V[:,ij], assume_a='sym')
        else:
            C = geminal_coefficients(self.r12eval, S)
        CB = numpy.einsum('ki,kl,li->i', C, B, C)
        CX = numpy.einsum('ki,kl,li->i', C, X, C)
        e = 2 * numpy.einsum('ki,ki->i', C, V) + CB - e_ij * CX
        if A is not None:
            AC = numpy.dot(A.T, C)
            e += numpy.einsum('ai,ia->i', AC**2, inv_d)
        return e, C

    def compute(self):
        if self.evaluated:
            return self
        self.check_sanity()
        log = logger.new_logger(self)
        cput0 = (logger.process_clock(), logger.perf_counter())
        ef12 = [None] * 3
        C = [None] * 3
        for S in spincase.unique_spincases2(self.spin_polarized):
            ef12[S], C[S] = self.compute_pairs(S)
        self.ef12_pairs = spincase.alias_betabeta(ef12, self.spin_polarized)
        self._C = spincase.alias_betabeta(C, self.spin_polarized)
        self.evaluated = True
        self.e_corr = sum(self.emp2f12tot(S) for S in spincase.SpinCase2)
        log.timer('MP2-R12 energy', *cput0)
        return self

    def ef12(self, S):
        self.compute()
        return self.ef12_pairs[S]

    def emp2(self, S):
        return self.r12eval.emp2(S)

    def emp2f12(self, S):
        return self.emp2(S) + self.ef12(S)

    def emp2f12tot(self, S):
        return self.emp2f12(S).sum()

    def ef12tot(self, S):
        return self.ef12(S).sum()

    def energy(self):
        self.compute()
        return self.e_corr

    def kernel(self):
        if self.verbose >= logger.WARN:
            self.check_sanity()
        self.dump_flags()
        self.compute()
        self.print_pair_energies()
        return self.e_corr

    def print_pair_energies(self, spinadapted=None, verbose=None):
        log = logger.new_logger(self, verbose)
        self.compute()
        if spinadapted is None:
            spinadapted = not self.spin_polarized
        AB, AA, BB = spincase.AlphaBeta, spincase.AlphaAlpha, spincase.BetaBeta
        ef12tot = [self.ef12tot(S) for S in spincase.SpinCase2]
        emp2tot = [self.emp2(S).sum() for S in spincase.SpinCase2]
        if spinadapted and not self.spin_polarized:
            occ = self.r12eval.ggspace()
            n = occ.rank
            e_ab = self.emp2f12(AB).reshape(n, n)
            e_aa = numpy.zeros((n, n))
            e_aa[pairindex.tril_pairs(n)] = self.emp2f12(AA)
            log.info('Singlet MP2-R12 pair energies:')
            log.info('    i       j     e(ij)')
            for i in range(n):
                for j in range(i+1):
                    if i == j:
                        e = e_ab[i,i]
                    else:
                        e = e_ab[i,j] + e_ab[j,i] - e_aa[i,j]
                    log.info('  %3d     %3d     %15.10f', i+1, j+1, e)
            log.info('Triplet MP2-R12 pair energies:')
            for i in range(n):
                for j in range(i):
                    log.info('  %3d     %3d     %15.10f', i+1, j+1, 3*e_aa[i,j])
            e_s = emp2tot[AB] + ef12tot[AB] - emp2tot[AA] - ef12tot[AA]
            e_t = 3 * (emp2tot[AA] + ef12tot[AA])
            log.note('Singlet MP2-R12 correlation energy = %.15g', e_s)
            log.note('Triplet MP2-R12 correlation energy = %.15g', e_t)
        else:
            for S in spincase.SpinCase2:
                log.info('%s MP2-R12 pair energies:', spincase.to_string(S))
                for ij, e in enumerate(self.emp2f12(S)):
                    log.info('  %5d     %15.10f', ij, e)
        for S in spincase.SpinCase2:
            log.info('%s MP2 energy = %.15g  R12 correction = %.15g',
                     spincase.to_string(S), emp2tot[S], ef12tot[S])
        log.note('MP2 correlation energy = %.15g', sum(emp2tot))
        log.note('R12 correction = %.15g', sum(ef12tot))
        log.note('MP2-R12 correlation energy = %.15g', self.e_corr)
        return self
