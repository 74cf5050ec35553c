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
Explicitly correlated (R12/F12) second-order intermediates and energies

Simple usage::

    >>> from pyscf import gto, scf
    >>> import mbptr12
    >>> mol = gto.M(atom='Ne', basis='cc-pvdz')
    >>> mf = scf.RHF(mol).run()
    >>> mbptr12.MP2R12(mf, auxbasis='cc-pvtz').kernel()
    >>> mbptr12.PT2R12(mf, auxbasis='cc-pvtz').kernel()
'''

from mbptr12 import spin
from mbptr12 import pairindex
from mbptr12 import parallel
from mbptr12 import orbitalspace
from mbptr12 import corrfactor
from mbptr12 import r12info
from mbptr12 import r12int_eval
from mbptr12 import mp2r12_energy
from mbptr12 import pt2r12
from mbptr12.errors import (ProgrammingError, FeatureNotImplemented,
                            TransformNotFound, InputError)
from mbptr12.orbitalspace import OrbitalSpace, OrbitalSpaceRegistry
from mbptr12.r12info import R12Technology, R12WavefunctionWorld
from mbptr12.r12int_eval import R12IntEval
from mbptr12.mp2r12_energy import (MP2R12Energy, R12EnergyIntermediates,
                                   CuspConsistentGeminalCoefficient)
from mbptr12.pt2r12 import PT2R12


def MP2R12(mf, auxbasis=None, vbsbasis=None, nfzc=0, nfzv=0, omit_uocc=False,
           fullopt=None, group=None, **kwargs):
    '''MP2-R12 energy of an SCF reference; kwargs are R12Technology
    options'''
    world = R12WavefunctionWorld(mf, R12Technology(**kwargs), auxbasis,
                                 vbsbasis, nfzc, nfzv, omit_uocc)
    r12eval = R12IntEval(world, group)
    return MP2R12Energy(R12EnergyIntermediates(r12eval), fullopt)
