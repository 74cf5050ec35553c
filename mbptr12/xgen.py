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
V and X: the explicit two-electron part followed by the resolution of the
identity of the projector of the ansatz.

With the RI in OBS + CABS (p: MOs, m: occupied, a': CABS), projector 2,

    V(mn,ij) = <mn|f g|ij> - <mn|f|pq><pq|g|ij>
               - <mn|f|m'a'><m'a'|g|ij> - <mn|f|a'm'><a'm'|g|ij>

and X likewise with g replaced by f.  Projector 1 replaces the occupied
orbitals of the last two terms by all MOs.  When the RI is done in the ABS
(orthonormal functions P') the OBS pairs are weighted +1 over occupied and
-1 over virtual pairs and the mixed terms run over m' and P'.
'''

from pyscf.lib import logger
from mbptr12 import spin as spincase
from mbptr12 import corrfactor as cf
from mbptr12.errors import FeatureNotImplemented
from mbptr12.tbint_tensor import (compute_tbint_tensor, contract_tbint_tensor,
                                  DirectContraction, CABSOBSContraction,
                                  ABSOBSContraction)


def projector_occ(ev, spin):
    '''Orbitals projected out by O in the mixed RI terms'''
    if ev.r12tech.projector == 1:
        return ev.orbs(spin)
    return ev.occ(spin)


def ri_blocks(ev, S, nabs=0):
    '''Pairs of integration spaces and weights of the RI of the projector.

    Returns a list of (space1, space2, contraction).
    '''
    spin1, spin2 = spincase.case1(S), spincase.case2(S)
    tech = ev.r12tech
    world = ev.world
    do_ri = ev.do_ri_in_abs(nabs)
    o1, o2 = projector_occ(ev, spin1), projector_occ(ev, spin2)
    blocks = []
    if tech.abs_in_cabs() or not do_ri:
        if world.obs_eq_vbs():
            p1, p2 = ev.orbs(spin1), ev.orbs(spin2)
            blocks.append((p1, p2, CABSOBSContraction(p1.rank, p2.rank)))
        else:
            m1, m2 = ev.occ(spin1), ev.occ(spin2)
            e1, e2 = ev.vir(spin1), ev.vir(spin2)
            for x1, x2 in ((m1, m2), (m1, e2), (e1, m2), (e1, e2)):
                blocks.append((x1, x2, DirectContraction(-1.)))
        if do_ri:
            c1, c2 = ev.cabs(spin1), ev.cabs(spin2)
            blocks.append((o1, c2, DirectContraction(-1.)))
            blocks.append((c1, o2, DirectContraction(-1.)))
    else:
        if not world.obs_eq_vbs():
            raise FeatureNotImplemented('RI in the ABS with a VBS different '
                                        'from the OBS', 'R12IntEval')
        p1, p2 = ev.orbs(spin1), ev.orbs(spin2)
        blocks.append((p1, p2, ABSOBSContraction(p1.rank, o1.rank, o2.rank,
                                                 p2.rank)))
        r1, r2 = ev.ribs(spin1), ev.ribs(spin2)
        blocks.append((o1, r2, DirectContraction(-1.)))
        blocks.append((r1, o2, DirectContraction(-1.)))
    return blocks


def contract_ri_(ev, T, S, oper_bra, oper_ket, bra1, bra2, ket1, ket2,
                 nfb, nfk, nabs=0):
    '''T += sum over the RI blocks of <bra|op_bra|xy> w(x,y) <xy|op_ket|ket>'''
    for x1, x2, contraction in ri_blocks(ev, S, nabs):
        if x1.rank == 0 or x2.rank == 0:
            continue
        tforms_bra = ev.tforms(oper_bra, bra1, x1, bra2, x2, nfb, 1)
        tforms_ket = ev.tforms(oper_ket, ket1, x1, ket2, x2, nfk, 1)
        contract_tbint_tensor(T, oper_bra, oper_ket, bra1, bra2, x1, x2,
                              ket1, ket2, x1, x2, contraction, False,
                              tforms_bra, tforms_ket, ev.group)
    return T


def compute_V_(ev, V, S):
    '''V(f GG, gg) over rectangular pairs'''
    log = logger.new_logger(ev)
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.pair_spaces('GG', S)
    g1, g2 = ev.pair_spaces('gg', S)
    tforms = ev.tforms(cf.F12ERI, G1, g1, G2, g2, nf, 1)
    compute_tbint_tensor(V, cf.F12ERI, G1, G2, g1, g2, False, tforms, ev.group)
    compute_V_ri_(ev, V, S)
    log.debug1('V(%s) norm %g', spincase.to_string(S), abs(V).sum())
    return V


def compute_V_ri_(ev, V, S):
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.pair_spaces('GG', S)
    g1, g2 = ev.pair_spaces('gg', S)
    return contract_ri_(ev, V, S, cf.F12, cf.ERI, G1, G2, g1, g2, nf, 1)


def compute_X_(ev, X, S):
    '''X(f GG, f GG) over rectangular pairs'''
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.pair_spaces('GG', S)
    tforms = ev.tforms(cf.F12F12, G1, G1, G2, G2, nf, nf)
    compute_tbint_tensor(X, cf.F12F12, G1, G2, G1, G2, False, tforms, ev.group)
    contract_ri_(ev, X, S, cf.F12, cf.F12, G1, G2, G1, G2, nf, nf)
    X[:] = (X + X.T) * .5
    return X
