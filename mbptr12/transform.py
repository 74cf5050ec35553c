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
Two-body MO integral transforms

A transform holds the integrals <i j|op|x y> = (i x|op|j y) for i in space1,
x in space2, j in space3, y in space4.  Consumers read them as "pair blocks":
for every (i, j) the n2 x n4 matrix over (x, y).  Blocks are read between
activate() and deactivate() of the accumulator, every retrieved block must
be released before the accumulator is deactivated.
'''

import numpy
from pyscf import lib
from pyscf.lib import logger
from pyscf import __config__
from mbptr12.errors import ProgrammingError, TransformNotFound
from mbptr12.integrals import ao2mo_4index

STORAGE = getattr(__config__, 'mbptr12_transform_storage', 'mem')
MAX_MEMORY = getattr(__config__, 'MAX_MEMORY', 4000)


def transform_label(space1, space2, space3, space4, oper_label, spincase=None):
    '''<s1 s3|op|s2 s4>, bra particles first'''
    label = '<%s %s|%s|%s %s>' % (space1.id, space3.id, oper_label,
                                  space2.id, space4.id)
    if spincase is not None:
        label += '_' + spincase
    return label


class IntsAccumulator(object):
    '''Pair-block access to the integrals of a transform'''
    def __init__(self, label, data, opers=(0,)):
        self.label = label
        self.data = data
        self.opers = opers
        self._active = False
        self._held = {}

    @property
    def shape(self):
        return self.data.shape

    def is_active(self):
        return self._active

    def activate(self):
        self._active = True
        return self

    def deactivate(self):
        if self._held:
            raise ProgrammingError('%d pair blocks of %s were not released' %
                                   (len(self._held), self.label),
                                   'IntsAccumulator.deactivate')
        self._active = False

    def nblocks_held(self):
        return sum(self._held.values())

    def retrieve_pair_block(self, i, j, oper=0):
        if not self._active:
            raise ProgrammingError('%s is not active' % self.label,
                                   'IntsAccumulator.retrieve_pair_block')
        if oper not in self.opers:
            raise ProgrammingError('%s has no operator %s' % (self.label, oper),
                                   'IntsAccumulator.retrieve_pair_block')
        key = (i, j, oper)
        self._held[key] = self._held.get(key, 0) + 1
        return numpy.asarray(self.data[i,j])

    def release_pair_block(self, i, j, oper=0):
        key = (i, j, oper)
        nheld = self._held.get(key, 0)
        if nheld == 0:
            raise ProgrammingError('pair block (%d,%d) of %s was not retrieved'
                                   % (i, j, self.label),
                                   'IntsAccumulator.release_pair_block')
        if nheld == 1:
            del self._held[key]
        else:
            self._held[key] = nheld - 1


def compute_transform_batchsize(n1, n2, n3, n4, nao_rest, max_memory,
                                mem_static=0):
    '''Number of space1 orbitals transformed in one pass.

    Memory per orbital of space1 is the half transformed AO block plus the
    MO result.
    '''
    per_i = (n2*n3*n4 + nao_rest) * 8e-6
    avail = max_memory - mem_static - lib.current_memory()[0]
    if per_i == 0:
        return max(n1, 1)
    return int(max(1, min(n1, avail // per_i)))


class TwoBodyMOIntsTransform(object):
    '''Transform of one two-body operator over four orbital spaces.

    Attributes:
        oper : str
            Operator name ('eri', 'f12', 'f12eri', 'f12f12', 'f12t1f12')
        spec : tuple
            (intor, zeta, scale) passed to the integral factory
        storage : str
            'mem' keeps the integrals in a numpy array, 'disk' in a
            temporary HDF5 file
    '''
    def __init__(self, label, factory, oper, spec, space1, space2, space3,
                 space4, storage=STORAGE, max_memory=MAX_MEMORY):
        self.label = label
        self.factory = factory
        self.oper = oper
        self.spec = spec
        self.space1 = space1
        self.space2 = space2
        self.space3 = space3
        self.space4 = space4
        self.storage = storage
        self.max_memory = max_memory
        self.verbose = factory.verbose
        self.stdout = factory.stdout
        self._acc = None
        self._feri = None

    @property
    def spaces(self):
        return self.space1, self.space2, self.space3, self.space4

    def computed(self):
        return self._acc is not None

    def compute(self):
        if self._acc is not None:
            return self
        log = logger.new_logger(self)
        cput0 = (logger.process_clock(), logger.perf_counter())
        s1, s2, s3, s4 = self.spaces
        n1, n2, n3, n4 = s1.rank, s2.rank, s3.rank, s4.rank
        shape = (n1, n3, n2, n4)
        if self.storage == 'disk':
            self._feri = lib.H5TmpFile()
            data = self._feri.create_dataset('pairs', shape, 'f8')
        elif self.storage == 'mem':
            data = numpy.zeros(shape)
        else:
            raise ProgrammingError('unknown storage %s' % self.storage,
                                   'TwoBodyMOIntsTransform')

        if n1 > 0 and n2*n3*n4 > 0:
            intor, zeta, scale = self.spec
            bases = [s.basis for s in self.spaces]
            eri = self.factory.tbint_ao(intor, zeta, bases)
            a1 = eri.shape[0]
            mos = [s.coefs_in(b) for s, b in zip(self.spaces, bases)]
            batch = compute_transform_batchsize(n1, n2, n3, n4, eri[0].size,
                                                self.max_memory, eri.nbytes*1e-6)
            npass = (n1 + batch - 1) // batch
            log.debug('transform %s: %d orbitals per pass, %d passes',
                      self.label, batch, npass)
            for i0, i1 in lib.prange(0, n1, batch):
                buf = ao2mo_4index(eri, [mos[0][:,i0:i1]] + mos[1:])
                if scale != 1:
                    buf *= scale
                data[i0:i1] = buf.transpose(0,2,1,3)
            eri = None
            log.timer_debug1('transform %s' % self.label, *cput0)
        self._acc = IntsAccumulator(self.label, data)
        return self

    def ints_acc(self):
        self.compute()
        return self._acc

    def obsolete(self):
        if self._acc is not None and self._acc.is_active():
            raise ProgrammingError('%s is still active' % self.label,
                                   'TwoBodyMOIntsTransform.obsolete')
        self._acc = None
        if self._feri is not None:
            self._feri.close()
            self._feri = None


class TransformFactory(object):
    '''Creates transforms and keeps them by label'''
    def __init__(self, ints_factory, storage=STORAGE, max_memory=MAX_MEMORY):
        self.ints_factory = ints_factory
        self.storage = storage
        self.max_memory = max_memory
        self._tforms = {}

    def __contains__(self, key):
        return key in self._tforms

    def keys(self):
        return self._tforms.keys()

    def add(self, tform):
        self._tforms[tform.label] = tform
        return tform.label

    def get(self, key):
        try:
            return self._tforms[key]
        except KeyError:
            raise TransformNotFound(key)

    def create(self, oper, spec, oper_label, space1, space2, space3, space4):
        label = transform_label(space1, space2, space3, space4, oper_label)
        if label not in self._tforms:
            self._tforms[label] = TwoBodyMOIntsTransform(
                label, self.ints_factory, oper, spec, space1, space2, space3,
                space4, self.storage, self.max_memory)
        return label

    def obsolete(self):
        for t in self._tforms.values():
            t.obsolete()
        self._tforms.clear()
