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
AO integrals over orbital spaces

All bases live in one "world" molecule, the orbital basis followed by ghost
copies of the auxiliary (RI) and, optionally, the virtual basis.  A basis is
a contiguous shell range of the world molecule, an orbital space expanded in
any union of them is transformed by padding its coefficients with zeros.
'''

from functools import reduce
import numpy
from pyscf import lib
from pyscf import gto
from pyscf import scf
from pyscf.lib import logger
from mbptr12.orbitalspace import BasisSet


def make_ghost_atoms(auxmol, prefix='GHOST'):
    '''A copy of auxmol that carries basis functions but no nuclei'''
    ghost = auxmol.copy()
    ghost._atm = ghost._atm.copy()
    ghost._atm[:,gto.CHARGE_OF] = 0
    ghost._atom = [('%s-%s' % (prefix, atom[0]), atom[1]) for atom in auxmol._atom]
    ghost._basis = dict(('%s-%s' % (prefix, atm), bas)
                        for atm, bas in auxmol._basis.items())
    ghost._pseudo = dict(('%s-%s' % (prefix, atm), ps)
                         for atm, ps in auxmol._pseudo.items())
    ghost._ecp = {}
    return ghost


def as_basis_mol(mol, basis):
    '''Build a Mole with the geometry of mol and the given basis'''
    if isinstance(basis, gto.Mole):
        return basis
    bmol = mol.copy()
    bmol.basis = basis
    bmol.build(False, False)
    return bmol


def build_world(mol, auxbasis=None, vbsbasis=None):
    '''Concatenate OBS, ABS and VBS.

    Returns:
        world : Mole
        bases : dict
            'obs', 'abs', 'vbs' -> BasisSet.  A missing auxiliary or virtual
            basis is the orbital basis itself.
    '''
    world = mol
    obs = BasisSet('OBS', mol, 0, mol.nbas)
    bases = {'obs': obs, 'abs': obs, 'vbs': obs}
    if auxbasis is not None:
        aux = make_ghost_atoms(as_basis_mol(mol, auxbasis), 'GHOST')
        shl0 = world.nbas
        world = gto.conc_mol(world, aux)
        bases['abs'] = BasisSet('ABS', world, shl0, world.nbas)
    if vbsbasis is not None:
        vbs = make_ghost_atoms(as_basis_mol(mol, vbsbasis), 'GHOSTV')
        shl0 = world.nbas
        world = gto.conc_mol(world, vbs)
        bases['vbs'] = BasisSet('VBS', world, shl0, world.nbas)
    for key, b in bases.items():
        bases[key] = BasisSet(b.name, world, b.shl0, b.shl1)
    return world, bases


def ao2mo_4index(eri, mos):
    '''(ij|kl) = sum C1_pi C2_qj C3_rk C4_sl (pq|rs)'''
    n1, n2, n3, n4 = [c.shape[1] for c in mos]
    a1, a2, a3, a4 = eri.shape
    out = numpy.dot(mos[0].T, eri.reshape(a1,-1)).reshape(n1,a2,a3,a4)
    out = lib.einsum('iqrs,qj->ijrs', out, mos[1])
    out = lib.einsum('ijrs,rk->ijks', out, mos[2])
    out = numpy.dot(out.reshape(-1,a4), mos[3])
    return out.reshape(n1,n2,n3,n4)


class IntegralFactory(object):
    '''Integrals between orbital spaces of one world molecule'''
    def __init__(self, world, verbose=None, stdout=None):
        self.world = world
        self.verbose = world.verbose if verbose is None else verbose
        self.stdout = world.stdout if stdout is None else stdout
        self._hcore = None

    def _merge_basis(self, *spaces):
        b = spaces[0].basis
        for s in spaces[1:]:
            b = b.union(s.basis)
        return b

    def _coefs(self, space, basis):
        return space.coefs_in(basis)

    def int1e(self, intor, space1, space2, comp=None):
        b1, b2 = space1.basis, space2.basis
        mat = self.world.intor(intor, comp=comp, shls_slice=b1.shls_slice+b2.shls_slice)
        c1 = space1.coefs_in(b1)
        c2 = space2.coefs_in(b2)
        if mat.ndim == 3:
            return numpy.asarray([reduce(numpy.dot, (c1.T, m, c2)) for m in mat])
        return reduce(numpy.dot, (c1.T, mat, c2))

    def ovlp(self, space1, space2):
        return self.int1e('int1e_ovlp', space1, space2)

    def hcore(self, space1, space2):
        '''Kinetic energy plus nuclear attraction of the real nuclei'''
        h = self.int1e('int1e_kin', space1, space2)
        h += self.int1e('int1e_nuc', space1, space2)
        if self.world.has_ecp():
            h += self.int1e('ECPscalar', space1, space2)
        return h

    def kinetic(self, space1, space2):
        return self.int1e('int1e_kin', space1, space2)

    def multipoles(self, space1, space2, origin=(0., 0., 0.)):
        '''Dipole and second moment integrals about a common origin.

        Returns:
            r : (3,n1,n2) array
            rr : (3,3,n1,n2) array
        '''
        with self.world.with_common_orig(origin):
            r = self.int1e('int1e_r', space1, space2, comp=3)
            rr = self.int1e('int1e_rr', space1, space2, comp=9)
        return r, rr.reshape((3,3)+rr.shape[1:])

    def jk(self, dm_a, dm_b, space1, space2):
        '''Coulomb operator of the total density and exchange operators of
        each spin density, represented between space1 and space2.

        dm_a, dm_b are AO density matrices in the orbital basis.
        '''
        world = self.world
        nao = world.nao_nr()
        n0 = dm_a.shape[0]
        dms = numpy.zeros((2,nao,nao))
        dms[0,:n0,:n0] = dm_a
        dms[1,:n0,:n0] = dm_b
        vj, vk = scf.hf.get_jk(world, dms, hermi=1)
        c1 = space1.coefs_in(BasisSet('world', world, 0, world.nbas))
        c2 = space2.coefs_in(BasisSet('world', world, 0, world.nbas))
        j = reduce(numpy.dot, (c1.T, vj[0] + vj[1], c2))
        ka = reduce(numpy.dot, (c1.T, vk[0], c2))
        kb = reduce(numpy.dot, (c1.T, vk[1], c2))
        return j, ka, kb

    def tbint_ao(self, intor, zeta, bases):
        world = self.world
        if zeta is not None:
            world.set_f12_zeta(zeta)
        shls_slice = bases[0].shls_slice + bases[1].shls_slice + \
                bases[2].shls_slice + bases[3].shls_slice
        return world.intor(intor, shls_slice=shls_slice, aosym='s1')

    def tbint(self, intor, zeta, scale, space1, space2, space3, space4):
        '''Chemists' (12|34) over the spaces, scaled'''
        spaces = (space1, space2, space3, space4)
        bases = [s.basis for s in spaces]
        eri = self.tbint_ao(intor, zeta, bases)
        mos = [s.coefs_in(b) for s, b in zip(spaces, bases)]
        out = ao2mo_4index(eri, mos)
        if scale != 1:
            out *= scale
        logger.debug1(self, 'tbint %s zeta=%s over %s %s %s %s', intor, zeta,
                      space1.id, space2.id, space3.id, space4.id)
        return out
