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
Correlation factors

NONE   conventional MP2, no geminals
R12    linear r12.  Only the intermediates that reduce to one-electron
       integrals (overlap, r12^2, [r12,[T1,r12]] = 1) are available, libcint
       has no two-electron r12 kernel.
G12    Slater-type geminals exp(-zeta r12), one function per exponent,
       evaluated with libcint's STG and Yukawa kernels.
'''

import numpy
from mbptr12.errors import InputError, FeatureNotImplemented

NONE = 'none'
R12 = 'r12'
G12 = 'g12'

# two-body operators
ERI = 'eri'            # 1/r12
F12 = 'f12'            # f(r12)
F12ERI = 'f12eri'      # f(r12)/r12
F12F12 = 'f12f12'      # f(r12) f'(r12)
F12T1F12 = 'f12t1f12'  # [f(r12), [T1, f'(r12)]]

OPER_LABELS = {ERI: 'ERI', F12: 'F12', F12ERI: 'F12ERI', F12F12: 'F12F12',
               F12T1F12: 'F12T1F12'}


class CorrelationFactor(object):
    '''Tagged correlation factor.

    Attributes:
        kind : str
            'none', 'r12' or 'g12'
        zeta : list of float
            Slater exponents, one per geminal function (G12 only)
    '''
    def __init__(self, kind=G12, zeta=None):
        kind = str(kind).lower()
        if kind in ('stg', 'g12', 'f12'):
            kind = G12
        if kind not in (NONE, R12, G12):
            raise InputError('unknown correlation factor', 'corrfactor', kind)
        if kind == G12:
            if zeta is None:
                zeta = 1.
            zeta = [float(z) for z in numpy.atleast_1d(zeta)]
            if len(zeta) == 0 or min(zeta) <= 0:
                raise InputError('Slater exponents must be positive', 'zeta', zeta)
        else:
            zeta = []
        self.kind = kind
        self.zeta = zeta

    @property
    def nfunctions(self):
        if self.kind == NONE:
            return 0
        elif self.kind == R12:
            return 1
        else:
            return len(self.zeta)

    def is_null(self):
        return self.kind == NONE

    def label(self):
        if self.kind == G12:
            return 'STG-G12[%s]' % ','.join('%g' % z for z in self.zeta)
        return self.kind.upper()

    def __repr__(self):
        return '<CorrelationFactor %s>' % self.label()

    def function_label(self, f1, f2=None):
        if f2 is None:
            return 'F12[%d]' % f1
        return 'F12[%d,%d]' % (f1, f2)

    def oper_label(self, oper, f1=0, f2=0):
        '''Key of an operator in transform labels'''
        if oper == ERI:
            return 'ERI'
        elif oper in (F12, F12ERI):
            return '%s[%d]' % (OPER_LABELS[oper], f1)
        else:
            return '%s[%d,%d]' % (OPER_LABELS[oper], f1, f2)

    def tbint_spec(self, oper, f1=0, f2=0):
        '''(intor, zeta, scale) of the AO integrals of an operator'''
        if oper == ERI:
            return 'int2e', None, 1.
        if self.kind != G12:
            raise FeatureNotImplemented('two-electron integrals of %s over the '
                                        '%s correlation factor' %
                                        (oper, self.label()),
                                        'CorrelationFactor.tbint_spec')
        z1 = self.zeta[f1]
        if oper == F12:
            return 'int2e_stg', z1, 1.
        elif oper == F12ERI:
            return 'int2e_yp', z1, 1.
        z2 = self.zeta[f2]
        if oper == F12F12:
            return 'int2e_stg', z1 + z2, 1.
        elif oper == F12T1F12:
            # grad_1 exp(-z1 r) . grad_1 exp(-z2 r)
            return 'int2e_stg', z1 + z2, z1 * z2
        raise InputError('unknown two-body operator', 'oper', oper)

    def cusp_scale(self, f=0):
        '''Scaling that makes geminal f satisfy the cusp condition with unit
        amplitude'''
        if self.kind == R12:
            return 1.
        elif self.kind == G12:
            return -1. / self.zeta[f]
        return 0.
