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
Orbital spaces and their registry

An orbital space is an immutable set of orbitals expanded in one of the
basis sets (OBS, VBS, ABS, or the union of several) of a combined molecule.
Basis sets are contiguous shell ranges of that molecule, so coefficients of
a space are moved to a larger basis by zero padding.
'''

import numpy
from mbptr12.errors import ProgrammingError


class BasisSet(object):
    '''Shells [shl0, shl1) of the combined molecule'''
    def __init__(self, name, mol, shl0=0, shl1=None):
        if shl1 is None:
            shl1 = mol.nbas
        self.name = name
        self.mol = mol
        self.shl0 = shl0
        self.shl1 = shl1
        ao_loc = mol.ao_loc_nr()
        self.ao0 = int(ao_loc[shl0])
        self.ao1 = int(ao_loc[shl1])

    @property
    def nao(self):
        return self.ao1 - self.ao0

    @property
    def shls_slice(self):
        return (self.shl0, self.shl1)

    def __eq__(self, other):
        return (isinstance(other, BasisSet) and self.mol is other.mol and
                self.shl0 == other.shl0 and self.shl1 == other.shl1)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((id(self.mol), self.shl0, self.shl1))

    def __repr__(self):
        return '<BasisSet %s shells %d:%d>' % (self.name, self.shl0, self.shl1)

    def contains(self, other):
        return (self.mol is other.mol and self.shl0 <= other.shl0 and
                other.shl1 <= self.shl1)

    def union(self, other, name=None):
        if self.mol is not other.mol:
            raise ProgrammingError('basis sets belong to different molecules',
                                   'BasisSet.union')
        if self.contains(other):
            return self
        if other.contains(self):
            return other
        if name is None:
            name = self.name + '+' + other.name
        return BasisSet(name, self.mol, min(self.shl0, other.shl0),
                        max(self.shl1, other.shl1))


class OrbitalSpace(object):
    '''Orbitals expanded in a basis set.

    Attributes:
        id : str
            Short key, e.g. "i" or "a'".  Alpha orbitals of a spin-polarized
            reference have upper-case keys, Beta orbitals lower-case.
        name : str
            Descriptive label.
        coefs : ndarray (nao, rank)
        basis : BasisSet
        energies : ndarray (rank,)
    '''
    def __init__(self, id, name, coefs, basis, energies=None, occnum=None):
        coefs = numpy.array(coefs, dtype=numpy.double)
        if coefs.ndim != 2 or coefs.shape[0] != basis.nao:
            raise ProgrammingError('coefficients of %s have shape %s, basis %s '
                                   'has %d functions' %
                                   (id, coefs.shape, basis.name, basis.nao),
                                   'OrbitalSpace')
        rank = coefs.shape[1]
        if energies is None:
            energies = numpy.zeros(rank)
        if occnum is None:
            occnum = numpy.zeros(rank)
        self.id = id
        self.name = name
        self.basis = basis
        self.coefs = coefs
        self.energies = numpy.array(energies, dtype=numpy.double)
        self.occnum = numpy.array(occnum, dtype=numpy.double)
        self.coefs.setflags(write=False)
        self.energies.setflags(write=False)
        self.occnum.setflags(write=False)

    @property
    def rank(self):
        return self.coefs.shape[1]

    @property
    def nao(self):
        return self.coefs.shape[0]

    def __len__(self):
        return self.rank

    def __repr__(self):
        return '<OrbitalSpace %s "%s" rank %d in %s>' % (
            self.id, self.name, self.rank, self.basis.name)

    def coefs_in(self, basis):
        '''Coefficients expressed in a basis that contains self.basis'''
        if basis == self.basis:
            return self.coefs
        if not basis.contains(self.basis):
            raise ProgrammingError('basis %s does not contain %s' %
                                   (basis.name, self.basis.name),
                                   'OrbitalSpace.coefs_in')
        c = numpy.zeros((basis.nao, self.rank))
        p0 = self.basis.ao0 - basis.ao0
        c[p0:p0+self.nao] = self.coefs
        return c

    def same_content(self, other):
        return (self.basis == other.basis and
                self.coefs.shape == other.coefs.shape and
                numpy.array_equal(self.coefs, other.coefs) and
                numpy.array_equal(self.energies, other.energies))

    def subspace(self, id, name, idx):
        idx = numpy.asarray(idx, dtype=int)
        return OrbitalSpace(id, name, self.coefs[:,idx], self.basis,
                            self.energies[idx], self.occnum[idx])

    def reorder_by_energy(self, id, name):
        idx = numpy.argsort(self.energies, kind='mergesort')
        return self.subspace(id, name, idx)


class EmptyOrbitalSpace(OrbitalSpace):
    def __init__(self, id, name, basis):
        OrbitalSpace.__init__(self, id, name, numpy.zeros((basis.nao, 0)), basis)


def union_spaces(id, name, space1, space2):
    '''Orbitals of space1 followed by those of space2'''
    basis = space1.basis.union(space2.basis)
    coefs = numpy.hstack((space1.coefs_in(basis), space2.coefs_in(basis)))
    energies = numpy.hstack((space1.energies, space2.energies))
    occnum = numpy.hstack((space1.occnum, space2.occnum))
    return OrbitalSpace(id, name, coefs, basis, energies, occnum)


def index_map(space_from, space_to, tol=1e-12):
    '''For every orbital of space_from the index of the identical orbital in
    space_to'''
    basis = space_from.basis.union(space_to.basis)
    c1 = space_from.coefs_in(basis)
    c2 = space_to.coefs_in(basis)
    idx = numpy.empty(space_from.rank, dtype=int)
    for i in range(space_from.rank):
        diff = abs(c2 - c1[:,i:i+1]).max(axis=0) if c2.size else numpy.zeros(0)
        hit = numpy.where(diff < tol)[0]
        if hit.size == 0:
            raise ProgrammingError('orbital %d of %s not found in %s' %
                                   (i, space_from.id, space_to.id), 'index_map')
        idx[i] = hit[0]
    return idx


class OrbitalSpaceRegistry(object):
    '''Maps keys to orbital spaces.  Spaces with identical content are stored
    once: registering a duplicate returns the key of the earlier space.'''
    def __init__(self):
        self._spaces = {}

    def __len__(self):
        return len(self._spaces)

    def __contains__(self, key):
        return key in self._spaces

    def key_exists(self, key):
        return key in self._spaces

    def find(self, space):
        '''Key of a registered space with the same content, or None'''
        found = self._spaces.get(space.id)
        if found is not None and (found is space or found.same_content(space)):
            return space.id
        for key, s in self._spaces.items():
            if s is space or s.same_content(space):
                return key
        return None

    def value_exists(self, space):
        return self.find(space) is not None

    def register(self, space):
        key = self.find(space)
        if key is not None:
            return key
        key = space.id
        if key in self._spaces:
            raise ProgrammingError('key %s is already used by a different space'
                                   % key, 'OrbitalSpaceRegistry.register')
        self._spaces[key] = space
        return key

    def add(self, space):
        '''Register space and return the canonical instance'''
        return self._spaces[self.register(space)]

    def lookup(self, key):
        try:
            return self._spaces[key]
        except KeyError:
            raise KeyError('orbital space %s is not registered' % key)

    def remove(self, key):
        del self._spaces[key]

    def clear(self):
        self._spaces.clear()

    def keys(self):
        return self._spaces.keys()
