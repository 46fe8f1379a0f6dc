"""
SNMP Agent Server.

UDP front end that decodes SNMPv1/v2c requests, hands them to the
RequestDispatcher as a batch, and encodes the answers.
"""

import asyncio
import logging
from typing import Any, List, Optional, Set, Tuple

from pyasn1.codec.ber import decoder, encoder
from pysnmp.proto import api, rfc1905
from pysnmp.proto.api import v1, v2c

from ..core.models import Request, RequestError, RequestMode, ValueType
from .dispatcher import RequestDispatcher


logger = logging.getLogger(__name__)


# SNMP syntax per protocol version
SNMP_TYPES = {
    api.SNMP_VERSION_1: {
        ValueType.OCTET_STRING: v1.OctetString,
        ValueType.INTEGER: v1.Integer,
        ValueType.GAUGE: v1.Gauge,
        ValueType.TIME_TICKS: v1.TimeTicks,
    },
    api.SNMP_VERSION_2C: {
        ValueType.OCTET_STRING: v2c.OctetString,
        ValueType.INTEGER: v2c.Integer32,
        ValueType.GAUGE: v2c.Gauge32,
        ValueType.TIME_TICKS: v2c.TimeTicks,
    },
}

# error-status for a failed SET; SNMPv1 uses the RequestError value as is
V2C_SET_ERRORS = {
    RequestError.READ_ONLY: 17,    # notWritable
    RequestError.NO_SUCH_NAME: 6,  # noAccess
}


class _SNMPProtocol(asyncio.DatagramProtocol):
    """UDP protocol handler for SNMP requests."""

    def __init__(self, agent: "SNMPAgent"):
        self.agent = agent
        self.transport = None
        self.pending: Set[asyncio.Future] = set()

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        task = asyncio.ensure_future(self._respond(data, addr))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    async def _respond(self, data, addr):
        # A refresh can block on apcupsd for up to its timeout
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, self.agent.handle_snmp_message, data)
        if response and self.transport:
            self.transport.sendto(response, addr)

    def error_received(self, exc):
        logger.error(f"SNMP UDP error: {exc}")


class SNMPAgent:
    """
    SNMP agent serving apcupsd data under the PowerNet MIB.

    Listens on a UDP port and responds to SNMPv1/v2c GET, GETNEXT,
    GETBULK and SET requests. Every OID is read-only.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        host: str = "0.0.0.0",
        port: int = 1161,
        community: str = "public",
    ):
        self.dispatcher = dispatcher
        self.host = host
        self.port = port
        self.community = community
        self._udp_transport = None
        self._running = False

    async def start(self):
        """Start the SNMP agent with a real UDP server."""
        logger.info(f"Starting SNMP Agent on UDP {self.host}:{self.port}")

        loop = asyncio.get_running_loop()
        self._udp_transport, _ = await loop.create_datagram_endpoint(
            lambda: _SNMPProtocol(self),
            local_addr=(self.host, self.port),
        )
        self._running = True
        logger.info(f"SNMP Agent listening on UDP port {self.port}")

    async def stop(self):
        """Stop the agent."""
        self._running = False
        if self._udp_transport:
            self._udp_transport.close()
            self._udp_transport = None
        logger.info("SNMP Agent stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # ── SNMP protocol handling ──────────────────────────────────

    def handle_snmp_message(self, data: bytes) -> Optional[bytes]:
        """Decode an SNMP request, answer it, return the encoded response."""
        try:
            msg_ver = int(api.decodeMessageVersion(data))
            if msg_ver not in api.PROTOCOL_MODULES:
                logger.debug(f"Unsupported SNMP version {msg_ver}")
                return None
            p_mod = api.PROTOCOL_MODULES[msg_ver]

            req_msg, _ = decoder.decode(data, asn1Spec=p_mod.Message())
            community = p_mod.apiMessage.get_community(req_msg)
            if str(community) != self.community:
                logger.debug("Dropping request with wrong community")
                return None

            req_pdu = p_mod.apiMessage.get_pdu(req_msg)
            rsp_msg = p_mod.apiMessage.get_response(req_msg)
            rsp_pdu = p_mod.apiMessage.get_pdu(rsp_msg)
            var_binds = p_mod.apiPDU.get_varbinds(req_pdu)

            if req_pdu.isSameTypeWith(p_mod.GetRequestPDU()):
                self._answer_get(msg_ver, p_mod, rsp_pdu, var_binds, RequestMode.GET)
            elif req_pdu.isSameTypeWith(p_mod.GetNextRequestPDU()):
                self._answer_get(msg_ver, p_mod, rsp_pdu, var_binds, RequestMode.GETNEXT)
            elif req_pdu.isSameTypeWith(p_mod.SetRequestPDU()):
                self._answer_set(msg_ver, p_mod, rsp_pdu, var_binds)
            elif msg_ver == api.SNMP_VERSION_2C and req_pdu.isSameTypeWith(p_mod.GetBulkRequestPDU()):
                self._answer_bulk(msg_ver, p_mod, req_pdu, rsp_pdu, var_binds)
            else:
                logger.debug(f"Ignoring unsupported PDU {req_pdu.__class__.__name__}")
                return None

            return encoder.encode(rsp_msg)

        except Exception as e:
            logger.error(f"SNMP processing error: {e}", exc_info=True)
            return None

    def _answer_get(self, msg_ver, p_mod, rsp_pdu, var_binds, mode: RequestMode):
        requests = self._to_requests(var_binds)
        self.dispatcher.dispatch(mode, requests)

        if msg_ver == api.SNMP_VERSION_1:
            failed = [i for i, r in enumerate(requests, start=1) if r.error is not None]
            if failed:
                # v1 answers the whole PDU with noSuchName, echoing the request
                p_mod.apiPDU.set_varbinds(rsp_pdu, var_binds)
                self._set_error(p_mod, rsp_pdu, RequestError.NO_SUCH_NAME, failed[0])
                return
            exception = None
        elif mode == RequestMode.GET:
            exception = rfc1905.noSuchInstance
        else:
            exception = rfc1905.endOfMibView

        rsp_var_binds = []
        for request, (oid, _) in zip(requests, var_binds):
            if request.error is None:
                rsp_var_binds.append(self._to_var_bind(msg_ver, request))
            else:
                rsp_var_binds.append((oid, exception))

        p_mod.apiPDU.set_varbinds(rsp_pdu, rsp_var_binds)

    def _answer_set(self, msg_ver, p_mod, rsp_pdu, var_binds):
        requests = self._to_requests(var_binds)
        self.dispatcher.dispatch(RequestMode.SET, requests)

        p_mod.apiPDU.set_varbinds(rsp_pdu, var_binds)
        for index, request in enumerate(requests, start=1):
            if request.error is None:
                continue
            if msg_ver == api.SNMP_VERSION_1:
                status = int(request.error)
            else:
                status = V2C_SET_ERRORS[request.error]
            self._set_error(p_mod, rsp_pdu, status, index)
            break

    def _answer_bulk(self, msg_ver, p_mod, req_pdu, rsp_pdu, var_binds):
        """Split a GETBULK into GETNEXT rounds served from one snapshot."""
        non_rep = min(int(p_mod.apiBulkPDU.get_non_repeaters(req_pdu)), len(var_binds))
        max_rep = int(p_mod.apiBulkPDU.get_max_repetitions(req_pdu))

        snapshot = self.dispatcher.snapshot()
        rsp_var_binds = []

        # Non-repeaters (single GETNEXT each)
        non_repeaters = self._to_requests(var_binds[:non_rep])
        self.dispatcher.answer(snapshot, RequestMode.GETNEXT, non_repeaters)
        rsp_var_binds.extend(self._to_bulk_var_bind(msg_ver, r) for r in non_repeaters)

        # Repeaters
        repeaters = self._to_requests(var_binds[non_rep:])
        for _ in range(max_rep):
            if not repeaters:
                break
            self.dispatcher.answer(snapshot, RequestMode.GETNEXT, repeaters)
            rsp_var_binds.extend(self._to_bulk_var_bind(msg_ver, r) for r in repeaters)
            if all(r.error is not None for r in repeaters):
                break
            repeaters = [Request(r.oid) for r in repeaters]

        p_mod.apiPDU.set_varbinds(rsp_pdu, rsp_var_binds)

    @staticmethod
    def _set_error(p_mod, rsp_pdu, status: int, index: int):
        """Set error-status and the 1-based error-index on a response PDU."""
        p_mod.apiPDU.set_error_status(rsp_pdu, int(status))
        p_mod.apiPDU.set_error_index(rsp_pdu, index)

    @staticmethod
    def _to_requests(var_binds) -> List[Request]:
        return [Request(tuple(oid)) for oid, _ in var_binds]

    def _to_bulk_var_bind(self, msg_ver, request: Request) -> Tuple[Any, Any]:
        if request.error is not None:
            return (v2c.ObjectIdentifier(request.oid), rfc1905.endOfMibView)
        return self._to_var_bind(msg_ver, request)

    @staticmethod
    def _to_var_bind(msg_ver, request: Request) -> Tuple[Any, Any]:
        """Convert an answered request to a pysnmp (oid, value) pair."""
        snmp_type = SNMP_TYPES[msg_ver][request.value_type]
        return (v2c.ObjectIdentifier(request.oid), snmp_type(request.value))
