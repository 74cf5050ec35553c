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
Options of the explicitly correlated methods and the orbital spaces they
share (the "world"): reference orbitals, RI basis, CABS and, for a virtual
basis different from the orbital basis, the canonical virtuals.
'''

import numpy
import scipy.linalg
from pyscf import lib
from pyscf.lib import logger
from pyscf.data import elements
from pyscf import __config__
from mbptr12 import spin as spincase
from mbptr12 import corrfactor
from mbptr12.errors import InputError, FeatureNotImplemented
from mbptr12.orbitalspace import (OrbitalSpace, OrbitalSpaceRegistry,
                                  union_spaces)
from mbptr12.integrals import IntegralFactory, build_world
from mbptr12.transform import TransformFactory
from mbptr12.refinfo import RefInfo, ORDMRefInfo, RefWavefunction, space_id

LINDEP = getattr(__config__, 'mbptr12_lindep', 1e-8)

STDAPPROX = ("A'", "A''", 'B', 'C', "C'")
ABS_METHODS = ('abs', 'abs+', 'cabs', 'cabs+')
ORBITAL_PRODUCTS = ('ij', 'pq')


class R12Technology(object):
    '''Ansatz and approximations of the R12 method.

    Attributes:
        corrfactor : str
            'none', 'r12' or 'stg' (Slater-type geminal)
        zeta : float or list
            STG exponents, one geminal function per exponent
        stdapprox : str
            Standard approximation, one of A', A'', B, C, C'
        projector : int
            Orthogonality projector of the ansatz, 1 or 2
        orbital_product_GG, orbital_product_gg : str
            'ij' geminals are generated by active occupied pairs, 'pq' by all
            orbital pairs
        abs_method : str
            'abs' or 'cabs' resolve the identity in the auxiliary basis, the
            '+' variants in the union of the orbital and auxiliary basis
        maxnabs : int
            Max number of RI indices in a bra or a ket
        gbc, ebc : bool
            Assume the generalized/extended Brillouin condition
        coupling : bool
            Couple the geminal and the conventional doubles (requires gbc=False)
        omit_B : bool
            Skip the B intermediate
        ints_method : str
            'mem' or 'disk' storage of the integral transforms
        dk : int
            Douglas-Kroll level of the one-electron Hamiltonian
    '''
    corrfactor = getattr(__config__, 'mbptr12_corrfactor', 'stg')
    zeta = getattr(__config__, 'mbptr12_zeta', 1.0)
    stdapprox = getattr(__config__, 'mbptr12_stdapprox', 'C')
    projector = getattr(__config__, 'mbptr12_projector', 2)
    orbital_product_GG = getattr(__config__, 'mbptr12_orbital_product_GG', 'ij')
    orbital_product_gg = getattr(__config__, 'mbptr12_orbital_product_gg', 'ij')
    abs_method = getattr(__config__, 'mbptr12_abs_method', 'cabs+')
    maxnabs = getattr(__config__, 'mbptr12_maxnabs', 2)
    gbc = getattr(__config__, 'mbptr12_gbc', True)
    ebc = getattr(__config__, 'mbptr12_ebc', True)
    coupling = getattr(__config__, 'mbptr12_coupling', False)
    omit_B = getattr(__config__, 'mbptr12_omit_B', False)
    ints_method = getattr(__config__, 'mbptr12_ints_method', 'mem')
    dk = getattr(__config__, 'mbptr12_dk', 0)
    safety_check = getattr(__config__, 'mbptr12_safety_check', True)

    def __init__(self, **kwargs):
        for key, val in kwargs.items():
            if not hasattr(self.__class__, key):
                raise InputError('unknown R12 option', key, val)
            setattr(self, key, val)
        self.check_sanity()
        self.corrfactor_obj = corrfactor.CorrelationFactor(self.corrfactor,
                                                           self.zeta)

    def check_sanity(self):
        if self.stdapprox not in STDAPPROX:
            raise InputError('unknown standard approximation', 'stdapprox',
                             self.stdapprox)
        if self.projector not in (1, 2):
            raise InputError('projector must be 1 or 2', 'projector',
                             self.projector)
        for key in ('orbital_product_GG', 'orbital_product_gg'):
            if getattr(self, key) not in ORBITAL_PRODUCTS:
                raise InputError('orbital product must be ij or pq', key,
                                 getattr(self, key))
        if self.abs_method not in ABS_METHODS:
            raise InputError('unknown ABS method', 'abs_method', self.abs_method)
        if self.ints_method not in ('mem', 'disk'):
            raise InputError('integral storage must be mem or disk',
                             'ints_method', self.ints_method)
        if self.maxnabs < 0:
            raise InputError('maxnabs must not be negative', 'maxnabs',
                             self.maxnabs)
        if self.coupling and self.gbc:
            raise InputError('coupling requires gbc = False', 'coupling',
                             self.coupling)
        if self.dk > 0:
            raise FeatureNotImplemented('Douglas-Kroll R12 intermediates',
                                        'R12Technology')
        return self

    def factor(self):
        return self.corrfactor_obj

    def abs_in_cabs(self):
        return self.abs_method.startswith('cabs')

    def abs_plus_obs(self):
        return self.abs_method.endswith('+')

    def dump_flags(self, log):
        log.info('correlation factor = %s', self.corrfactor_obj.label())
        log.info('standard approximation = %s', self.stdapprox)
        log.info('projector = %d', self.projector)
        log.info('orbital products GG = %s  gg = %s',
                 self.orbital_product_GG, self.orbital_product_gg)
        log.info('ABS method = %s  maxnabs = %d', self.abs_method, self.maxnabs)
        log.info('gbc = %s  ebc = %s  coupling = %s',
                 self.gbc, self.ebc, self.coupling)
        log.info('omit_B = %s  integral storage = %s', self.omit_B,
                 self.ints_method)


def find_cabs(s, nobs, lindep=LINDEP):
    '''Complement of the first nobs functions in the span of all functions'''
    ls12 = scipy.linalg.solve(s[:nobs,:nobs], s[:nobs,nobs:], assume_a='pos')
    s22 = s[nobs:,nobs:] - s[nobs:,:nobs].dot(ls12)
    w, v = scipy.linalg.eigh(s22)
    c2 = v[:,w>lindep] / numpy.sqrt(w[w>lindep])
    c1 = ls12.dot(c2)
    return numpy.vstack((-c1, c2))


def canonical_orth(s, lindep=LINDEP):
    w, v = scipy.linalg.eigh(s)
    return v[:,w>lindep] / numpy.sqrt(w[w>lindep])


def orthogonal_complement(s, c_out, lindep=LINDEP, tol=1e-6):
    '''Orthonormal functions of a basis (overlap s) orthogonal to the
    columns of c_out'''
    x = canonical_orth(s, lindep)
    q = numpy.dot(x.T, numpy.dot(s, c_out))
    if q.shape[1] == 0:
        return x
    u, sv, vt = scipy.linalg.svd(q)
    rank = numpy.count_nonzero(sv > tol)
    return numpy.dot(x, u[:,rank:])


def make_refinfo(obj, basis=None, nfzc=0, nfzv=0, omit_uocc=False):
    '''Reference provider for an SCF or a CASCI/CASSCF object'''
    if isinstance(obj, RefWavefunction):
        return obj
    if hasattr(obj, 'fcisolver') and hasattr(obj, 'ncas'):
        return ORDMRefInfo(obj, basis, nfzc, nfzv, omit_uocc)
    return RefInfo(obj, basis, nfzc, nfzv, omit_uocc)


def get_nfzc(mol, nfzc):
    '''nfzc may be an int, 'auto' (chemical core) or 'no' '''
    if nfzc in (None, 'no', False):
        return 0
    if nfzc == 'auto':
        return elements.chemcore(mol)
    return int(nfzc)


class R12WavefunctionWorld(lib.StreamObject):
    '''Reference, basis sets and orbital spaces of an R12 computation.

    Args:
        ref : SCF, CASCI/CASSCF object or RefWavefunction
        auxbasis : str, dict or Mole
            RI basis.  None resolves the identity in the orbital basis.
        vbsbasis : str, dict or Mole
            Virtual basis.  None uses the orbital basis.
    '''
    def __init__(self, ref, r12tech=None, auxbasis=None, vbsbasis=None,
                 nfzc=0, nfzv=0, omit_uocc=False):
        if r12tech is None:
            r12tech = R12Technology()
        mol = ref.mol
        self.mol = mol
        self.verbose = mol.verbose
        self.stdout = mol.stdout
        self.max_memory = getattr(ref, 'max_memory', mol.max_memory)
        self.r12tech = r12tech
        self.auxbasis = auxbasis
        self.vbsbasis = vbsbasis

        self.world, self.bases = build_world(mol, auxbasis, vbsbasis)
        nfzc = get_nfzc(mol, nfzc)
        self.ref = make_refinfo(ref, self.bases['obs'], nfzc, nfzv, omit_uocc)
        self.ref.basis = self.bases['obs']
        self.ref.obsolete()
        self.ints = IntegralFactory(self.world, self.verbose, self.stdout)
        self.tfactory = TransformFactory(self.ints, r12tech.ints_method,
                                         self.max_memory)
        self.registry = OrbitalSpaceRegistry()
        self._spaces = {}
        self._keys = set(self.__dict__.keys())

    @property
    def spin_polarized(self):
        return self.ref.spin_polarized

    @property
    def nfzc(self):
        return self.ref.nfzc

    def obs_eq_vbs(self):
        return self.vbsbasis is None

    def abs_eq_obs(self):
        return self.auxbasis is None

    def obs_eq_ribs(self):
        return self.abs_eq_obs()

    def sdref(self):
        '''Whether the reference is a single determinant'''
        return isinstance(self.ref, RefInfo)

    def dump_flags(self, verbose=None):
        log = logger.new_logger(self, verbose)
        log.info('')
        log.info('******** %s ********', self.__class__.__name__)
        log.info('reference = %s  spin_polarized = %s',
                 self.ref.__class__.__name__, self.spin_polarized)
        for key in ('obs', 'vbs', 'abs'):
            b = self.bases[key]
            log.info('%s: %s, %d functions', key.upper(), b.name, b.nao)
        self.r12tech.dump_flags(log)
        return self

    def obsolete(self):
        self.ref.obsolete()
        self.tfactory.obsolete()
        self.registry.clear()
        self._spaces.clear()
        return self

    def add_space(self, space):
        return self.registry.add(space)

    def _memo(self, key, build):
        if key not in self._spaces:
            self._spaces[key] = self.registry.add(build())
        return self._spaces[key]

    # reference spaces, registered
    def occ(self, spin=spincase.Alpha):
        return self._memo(('occ', spin), lambda: self.ref.occ(spin))

    def occ_act(self, spin=spincase.Alpha):
        return self._memo(('occ_act', spin), lambda: self.ref.occ_act(spin))

    def orbs(self, spin=spincase.Alpha):
        '''All orbitals of the reference; with a separate VBS the occupied
        orbitals followed by the VBS virtuals'''
        if self.obs_eq_vbs():
            return self._memo(('orbs', spin), lambda: self.ref.orbs(spin))
        return self._memo(('orbs', spin), lambda: union_spaces(
            space_id('p', spin, self.spin_polarized),
            spincase.prepend_spincase(spin, 'MOs'),
            self.occ(spin), self.vir(spin)))

    def vir(self, spin=spincase.Alpha):
        if self.obs_eq_vbs():
            return self._memo(('vir', spin), lambda: self.ref.vir(spin))
        return self.form_canonvir_space(spin)

    def vir_act(self, spin=spincase.Alpha):
        if self.obs_eq_vbs():
            return self._memo(('vir_act', spin), lambda: self.ref.vir_act(spin))
        vir = self.form_canonvir_space(spin)
        nfzv = self.ref.nfzv
        return self._memo(('vir_act', spin), lambda: vir.subspace(
            space_id('a', spin, self.spin_polarized),
            spincase.prepend_spincase(spin, 'active unoccupied MOs'),
            numpy.arange(vir.rank - nfzv)))

    def form_canonvir_space(self, spin=spincase.Alpha):
        '''Virtuals in the VBS: the complement of the occupied orbitals,
        diagonalizing the Fock operator'''
        def build():
            vbs = self.bases['vbs']
            occ = self.occ(spin)
            vbs_space = OrbitalSpace('vbs-ao', 'VBS AOs', numpy.eye(vbs.nao), vbs)
            s = self.ints.ovlp(vbs_space, vbs_space)
            s_occ = self.ints.ovlp(vbs_space, occ)
            x = canonical_orth(s)
            q = numpy.dot(x.T, s_occ)
            u, sv = scipy.linalg.svd(q)[:2]
            rank = numpy.count_nonzero(sv > 1e-6)
            c = numpy.dot(x, u[:,rank:])
            tmp = OrbitalSpace('vbs-vir', 'VBS virtuals', c, vbs)
            f = self.fock(tmp, tmp, spin)
            e, v = scipy.linalg.eigh(f)
            return OrbitalSpace(space_id('e', spin, self.spin_polarized),
                                spincase.prepend_spincase(spin, 'canonical VBS virtuals'),
                                numpy.dot(c, v), vbs, e)
        return self._memo(('canonvir', spin), build)

    def fock(self, space1, space2, spin=spincase.Alpha, scale_J=1., scale_K=1.,
             scale_H=1.):
        '''F = scale_H h + scale_J J - scale_K K of the reference density'''
        out = 0
        if scale_H != 0:
            out = out + scale_H * self.ints.hcore(space1, space2)
        if scale_J != 0 or scale_K != 0:
            dm_a = self.ref.rdm1_ao(spincase.Alpha)
            dm_b = self.ref.rdm1_ao(spincase.Beta)
            j, ka, kb = self.ints.jk(dm_a, dm_b, space1, space2)
            k = ka if spin == spincase.Alpha else kb
            out = out + scale_J * j - scale_K * k
        if isinstance(out, int):
            out = numpy.zeros((space1.rank, space2.rank))
        return out

    def ribs(self, spin=spincase.Alpha):
        '''Orthonormal RI basis: orbs + CABS for the CABS methods, the
        orthonormalized (OBS+)ABS for the ABS methods'''
        def build():
            polar = self.spin_polarized
            if self.r12tech.abs_in_cabs():
                return union_spaces(space_id("p'", spin, polar),
                                    spincase.prepend_spincase(spin, 'RIBS'),
                                    self.orbs(spin), self.cabs(spin))
            basis = self.abs_basis()
            ao = OrbitalSpace('abs-ao', 'ABS AOs', numpy.eye(basis.nao), basis)
            x = canonical_orth(self.ints.ovlp(ao, ao))
            return OrbitalSpace(space_id("p'", spin, polar),
                                spincase.prepend_spincase(spin, 'RIBS'), x, basis)
        return self._memo(('ribs', spin), build)

    def abs_basis(self):
        '''Basis of the RI: ABS alone or the union with the OBS'''
        if self.abs_eq_obs():
            return self.bases['obs']
        if self.r12tech.abs_plus_obs():
            return self.bases['obs'].union(self.bases['abs'], 'RIBS')
        return self.bases['abs']

    def cabs(self, spin=spincase.Alpha):
        '''Complement of orbs(spin) in the RI basis'''
        def build():
            polar = self.spin_polarized
            orbs = self.orbs(spin)
            obs = self.bases['obs']
            basis = obs.union(self.abs_basis(), 'RIBS')
            if not self.obs_eq_vbs():
                basis = basis.union(self.bases['vbs'], 'RIBS')
            ao = OrbitalSpace('ribs-ao', 'RIBS AOs', numpy.eye(basis.nao), basis)
            s = self.ints.ovlp(ao, ao)
            spans_obs = self.obs_eq_vbs() and orbs.rank == obs.nao
            if basis.nao == obs.nao and spans_obs:
                c = numpy.zeros((basis.nao, 0))
            elif spans_obs and basis.ao0 == obs.ao0:
                c = find_cabs(s, obs.nao)
            else:
                c = orthogonal_complement(s, orbs.coefs_in(basis))
            log = logger.new_logger(self)
            log.debug('CABS of %s: %d functions', orbs.id, c.shape[1])
            return OrbitalSpace(space_id("a'", spin, polar),
                                spincase.prepend_spincase(spin, 'CABS'),
                                c, basis)
        return self._memo(('cabs', spin), build)
