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
Reference wavefunctions

A reference provides, per spin, the orbital spaces the explicitly correlated
methods are built on and the 1- and 2-particle density matrices over the
occupied ("rdm") space.  Two-particle quantities use the physicist's layout
Gamma[p,q,r,s] = <p^+ q^+ s r>; as matrices, opposite-spin ones are
indexed by p*n+q, same-spin ones are packed over p > q.

RefInfo wraps RHF, ROHF and UHF objects, ORDMRefInfo wraps CASCI and CASSCF
objects.
'''

from functools import reduce
import numpy
import scipy.linalg
from pyscf import lib
from pyscf import scf
from pyscf.lib import logger
from mbptr12 import spin as spincase
from mbptr12 import pairindex
from mbptr12.errors import InputError
from mbptr12.orbitalspace import OrbitalSpace, EmptyOrbitalSpace, BasisSet


def space_id(key, spin, spin_polarized):
    '''Alpha spaces of a spin-polarized reference get upper-case keys'''
    if spin_polarized and spin == spincase.Alpha:
        return key.upper()
    return key


def semicanonicalize(fock, coefs, mask):
    '''Diagonalize fock in the orbitals selected by mask and in the rest'''
    coefs = coefs.copy()
    energies = numpy.zeros(coefs.shape[1])
    for idx in (numpy.where(mask)[0], numpy.where(~mask)[0]):
        if idx.size == 0:
            continue
        c = coefs[:,idx]
        f = reduce(numpy.dot, (c.T, fock, c))
        e, u = scipy.linalg.eigh(f)
        coefs[:,idx] = numpy.dot(c, u)
        energies[idx] = e
    return coefs, energies


class RefWavefunction(lib.StreamObject):
    '''Orbital spaces and density matrices shared by all references.

    Subclasses define _build() which sets, per spin, the MO coefficients
    (self._coefs), energies, occupation numbers, the index array of occupied
    orbitals and the 1-RDM over them.
    '''
    def __init__(self, mol, basis=None, nfzc=0, nfzv=0, omit_uocc=False):
        self.mol = mol
        self.verbose = mol.verbose
        self.stdout = mol.stdout
        if basis is None:
            basis = BasisSet('OBS', mol, 0, mol.nbas)
        self.basis = basis
        self.nfzc = nfzc
        self.nfzv = nfzv
        self.omit_uocc = omit_uocc
        self.spin_polarized = False
        self._spaces = None
        self._rdm1 = None
        self._cumulant = None

    def dump_flags(self, verbose=None):
        log = logger.new_logger(self, verbose)
        log.info('')
        log.info('******** %s ********', self.__class__.__name__)
        log.info('spin_polarized = %s', self.spin_polarized)
        log.info('nfzc = %d  nfzv = %d', self.nfzc, self.nfzv)
        log.info('omit_uocc = %s', self.omit_uocc)
        return self

    def _build(self):
        raise NotImplementedError

    def _init_spaces(self):
        if self._spaces is not None:
            return
        self._build()
        spaces = [None, None]
        for s in spincase.unique_spincases1(self.spin_polarized):
            spaces[s] = self._make_spaces(s)
        self._spaces = spincase.alias_beta(spaces, self.spin_polarized)

    def _make_spaces(self, spin):
        polar = self.spin_polarized
        label = lambda key: space_id(key, spin, polar)
        name = lambda txt: spincase.prepend_spincase(spin, txt)
        coefs = self._coefs[spin]
        energies = self._energies[spin]
        occnum = self._occnum[spin]
        occ_idx = self._occ_idx[spin]
        nmo = coefs.shape[1]
        vir_idx = numpy.array([p for p in range(nmo) if p not in set(occ_idx)],
                              dtype=int)
        if self.nfzc > len(occ_idx):
            raise InputError('more frozen core than occupied orbitals',
                             'nfzc', self.nfzc)
        if self.nfzv > len(vir_idx):
            raise InputError('more frozen virtuals than virtual orbitals',
                             'nfzv', self.nfzv)
        basis = self.basis
        orbs_all = OrbitalSpace('p', 'MOs', coefs, basis, energies, occnum)
        occ = orbs_all.subspace(label('m'), name('occupied MOs'), occ_idx)
        occ_act = orbs_all.subspace(label('i'), name('active occupied MOs'),
                                    occ_idx[self.nfzc:])
        if self.omit_uocc:
            vir = EmptyOrbitalSpace(label('e'), name('unoccupied MOs'), basis)
            vir_act = EmptyOrbitalSpace(label('a'), name('active unoccupied MOs'), basis)
            orbs = orbs_all.subspace(label('p'), name('MOs'), occ_idx)
        else:
            vir = orbs_all.subspace(label('e'), name('unoccupied MOs'), vir_idx)
            vir_act = orbs_all.subspace(label('a'), name('active unoccupied MOs'),
                                        vir_idx[:len(vir_idx)-self.nfzv])
            orbs = orbs_all.subspace(label('p'), name('MOs'),
                                     numpy.hstack((occ_idx, vir_idx)))
        return {'orbs': orbs, 'occ': occ, 'occ_act': occ_act, 'vir': vir,
                'vir_act': vir_act}

    def _space(self, kind, spin):
        self._init_spaces()
        return self._spaces[spin][kind]

    def orbs(self, spin=spincase.Alpha):
        return self._space('orbs', spin)

    def occ(self, spin=spincase.Alpha):
        return self._space('occ', spin)

    def occ_act(self, spin=spincase.Alpha):
        return self._space('occ_act', spin)

    def vir(self, spin=spincase.Alpha):
        return self._space('vir', spin)
    uocc = vir

    def vir_act(self, spin=spincase.Alpha):
        return self._space('vir_act', spin)
    uocc_act = vir_act

    def rdm_space(self, spin=spincase.Alpha):
        '''Orbitals spanned by the density matrices'''
        return self.occ(spin)

    def rdm1(self, spin=spincase.Alpha):
        '''1-RDM over rdm_space(spin)'''
        self._init_spaces()
        return self._rdm1[spin]

    def rdm1_ao(self, spin=spincase.Alpha):
        c = self.rdm_space(spin).coefs
        return reduce(numpy.dot, (c, self.rdm1(spin), c.T))

    def cumulant_full(self, S):
        '''Cumulant lambda[p,q,r,s] of the 2-RDM'''
        self._init_spaces()
        return self._cumulant[S]

    def rdm2_full(self, S):
        '''2-RDM Gamma[p,q,r,s] = <p^+ q^+ s r>, same-spin ones antisymmetric'''
        lam = self.cumulant_full(S)
        g1 = self.rdm1(spincase.case1(S))
        g2 = self.rdm1(spincase.case2(S))
        gamma = lam + numpy.einsum('pr,qs->pqrs', g1, g2)
        if S != spincase.AlphaBeta:
            gamma -= numpy.einsum('ps,qr->pqrs', g1, g2)
        return gamma

    def rdm2(self, S):
        return pairindex.to_pair_matrix(self.rdm2_full(S),
                                        S != spincase.AlphaBeta)

    def cumulant(self, S):
        return pairindex.to_pair_matrix(self.cumulant_full(S),
                                        S != spincase.AlphaBeta)
    lambda2 = cumulant

    def energy(self):
        return self.e_tot

    def obsolete(self):
        self._spaces = None
        self._rdm1 = None
        self._cumulant = None
        return self


class RefInfo(RefWavefunction):
    '''Single determinant reference from an RHF, ROHF or UHF object.

    ROHF orbitals are semicanonicalized: occupied and unoccupied blocks of
    each spin diagonalize that spin's Fock operator.  The resulting
    reference does not satisfy the Brillouin condition.
    '''
    def __init__(self, mf, basis=None, nfzc=0, nfzv=0, omit_uocc=False):
        RefWavefunction.__init__(self, mf.mol, basis, nfzc, nfzv, omit_uocc)
        self._scf = mf
        self.e_tot = mf.e_tot
        self.spin_polarized = isinstance(mf, (scf.uhf.UHF, scf.rohf.ROHF))
        self.semicanonical = isinstance(mf, scf.rohf.ROHF)
        self._keys = set(self.__dict__.keys())

    @property
    def bc(self):
        '''Whether the Brillouin condition holds'''
        return not self.semicanonical

    def _build(self):
        mf = self._scf
        if isinstance(mf, scf.rohf.ROHF):
            dm = mf.make_rdm1()
            vj, vk = mf.get_jk(mf.mol, dm)
            h = mf.get_hcore()
            focks = (h + vj[0] + vj[1] - vk[0], h + vj[0] + vj[1] - vk[1])
            occs = (mf.mo_occ > 0, mf.mo_occ == 2)
            coefs = []
            energies = []
            for s in range(2):
                c, e = semicanonicalize(focks[s], mf.mo_coeff, occs[s])
                coefs.append(c)
                energies.append(e)
            occnum = [o.astype(float) for o in occs]
        elif isinstance(mf, scf.uhf.UHF):
            coefs = list(mf.mo_coeff)
            energies = list(mf.mo_energy)
            occnum = [numpy.asarray(o, dtype=float) for o in mf.mo_occ]
        else:
            coefs = [mf.mo_coeff]
            energies = [mf.mo_energy]
            occnum = [mf.mo_occ * .5]
        self._coefs = spincase.alias_beta(list(coefs) + [None]*(2-len(coefs)),
                                          self.spin_polarized)
        self._energies = spincase.alias_beta(list(energies) + [None]*(2-len(energies)),
                                             self.spin_polarized)
        self._occnum = spincase.alias_beta(list(occnum) + [None]*(2-len(occnum)),
                                           self.spin_polarized)
        occ_idx = [None, None]
        rdm1 = [None, None]
        for s in spincase.unique_spincases1(self.spin_polarized):
            occ_idx[s] = numpy.where(self._occnum[s] > .5)[0]
            rdm1[s] = numpy.eye(len(occ_idx[s]))
        self._occ_idx = spincase.alias_beta(occ_idx, self.spin_polarized)
        self._rdm1 = spincase.alias_beta(rdm1, self.spin_polarized)
        cumulant = [None, None, None]
        for S in spincase.unique_spincases2(self.spin_polarized):
            n1 = len(self._occ_idx[spincase.case1(S)])
            n2 = len(self._occ_idx[spincase.case2(S)])
            cumulant[S] = numpy.zeros((n1, n2, n1, n2))
        self._cumulant = spincase.alias_betabeta(cumulant, self.spin_polarized)


class ORDMRefInfo(RefWavefunction):
    '''Reference given by the orbitals and 1-, 2-RDMs of a CASCI or CASSCF
    object.  The rdm space holds the core and active orbitals; the cumulant
    vanishes outside the active block.
    '''
    def __init__(self, mc, basis=None, nfzc=0, nfzv=0, omit_uocc=False,
                 spin_polarized=None):
        RefWavefunction.__init__(self, mc.mol, basis, nfzc, nfzv, omit_uocc)
        self._mc = mc
        self.e_tot = mc.e_tot
        if spin_polarized is None:
            spin_polarized = mc.mol.spin != 0
        self.spin_polarized = spin_polarized
        self._keys = set(self.__dict__.keys())

    def dump_flags(self, verbose=None):
        RefWavefunction.dump_flags(self, verbose)
        log = logger.new_logger(self, verbose)
        log.info('ncore = %d  ncas = %d  nelecas = %s',
                 self._mc.ncore, self._mc.ncas, self._mc.nelecas)
        return self

    def _build(self):
        mc = self._mc
        ncore = mc.ncore
        ncas = mc.ncas
        nocc = ncore + ncas
        (dm1a, dm1b), (dm2aa, dm2ab, dm2bb) = \
                mc.fcisolver.make_rdm12s(mc.ci, ncas, mc.nelecas)
        dm1 = (dm1a, dm1b)
        # <p^+ r^+ s q> -> Gamma[p,r,q,s]
        dm2 = {spincase.AlphaAlpha: dm2aa.transpose(0,2,1,3),
               spincase.AlphaBeta: dm2ab.transpose(0,2,1,3),
               spincase.BetaBeta: dm2bb.transpose(0,2,1,3)}
        if not self.spin_polarized:
            dm1 = ((dm1a + dm1b) * .5,) * 2
            dm2[spincase.AlphaAlpha] = (dm2[spincase.AlphaAlpha] +
                                        dm2[spincase.BetaBeta]) * .5
            dm2ab = dm2[spincase.AlphaBeta]
            dm2[spincase.AlphaBeta] = (dm2ab + dm2ab.transpose(1,0,3,2)) * .5

        mo_energy = getattr(mc, 'mo_energy', None)
        if mo_energy is None:
            mo_energy = numpy.zeros(mc.mo_coeff.shape[1])
        nmo = mc.mo_coeff.shape[1]
        occnum = numpy.zeros(nmo)
        occnum[:ncore] = 1.
        occnum[ncore:nocc] = (dm1[0].diagonal() + dm1[1].diagonal()) * .5
        self._coefs = [mc.mo_coeff, mc.mo_coeff]
        self._energies = [mo_energy, mo_energy]
        self._occnum = [occnum, occnum]
        self._occ_idx = [numpy.arange(nocc)] * 2

        rdm1 = [None, None]
        for s in spincase.unique_spincases1(self.spin_polarized):
            g = numpy.zeros((nocc, nocc))
            g[:ncore,:ncore] = numpy.eye(ncore)
            g[ncore:,ncore:] = dm1[s]
            rdm1[s] = g
        self._rdm1 = spincase.alias_beta(rdm1, self.spin_polarized)

        cumulant = [None, None, None]
        for S in spincase.unique_spincases2(self.spin_polarized):
            g1 = dm1[spincase.case1(S)]
            g2 = dm1[spincase.case2(S)]
            lam = dm2[S] - numpy.einsum('pr,qs->pqrs', g1, g2)
            if S != spincase.AlphaBeta:
                lam += numpy.einsum('ps,qr->pqrs', g1, g2)
            full = numpy.zeros((nocc,)*4)
            full[ncore:,ncore:,ncore:,ncore:] = lam
            cumulant[S] = full
        self._cumulant = spincase.alias_betabeta(cumulant, self.spin_polarized)
