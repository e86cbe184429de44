"""
Block stream wire schema.

Message classes for the ``dfuse.bstream.v1.BlockStreamV2`` service and the
EOSIO codec block, registered in the default protobuf descriptor pool at
import time. Only the fields this client reads or sends are declared; any
other field present on the wire is kept as an unknown field by protobuf.
"""

from google.protobuf import any_pb2  # noqa: F401  (registers google/protobuf/any.proto)
from google.protobuf import timestamp_pb2  # noqa: F401  (registers google/protobuf/timestamp.proto)
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from models.requests import BlockDetails, ForkStep

BSTREAM_PACKAGE = "dfuse.bstream.v1"
CODEC_PACKAGE = "dfuse.eosio.codec.v1"

BLOCKS_METHOD = f"/{BSTREAM_PACKAGE}.BlockStreamV2/Blocks"
BLOCK_TYPE_URL = f"type.googleapis.com/{CODEC_PACKAGE}.Block"

_F = descriptor_pb2.FieldDescriptorProto


def _add_field(message, name: str, number: int, field_type: int, type_name: str = "", repeated: bool = False):
    field = message.field.add()
    field.name = name
    field.number = number
    field.type = field_type
    field.label = _F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL
    if type_name:
        field.type_name = type_name


def _bstream_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="dfuse/bstream/v1/bstream.proto",
        package=BSTREAM_PACKAGE,
        syntax="proto3",
    )
    proto.dependency.append("google/protobuf/any.proto")

    fork_step = proto.enum_type.add(name="ForkStep")
    for step in ForkStep:
        fork_step.value.add(name=f"STEP_{step.name}", number=int(step))

    details = proto.enum_type.add(name="BlockDetails")
    for detail in BlockDetails:
        details.value.add(name=f"BLOCK_DETAILS_{detail.name}", number=int(detail))

    request = proto.message_type.add(name="BlocksRequestV2")
    _add_field(request, "start_block_num", 1, _F.TYPE_INT64)
    _add_field(request, "stop_block_num", 5, _F.TYPE_UINT64)
    _add_field(request, "fork_steps", 8, _F.TYPE_ENUM, f".{BSTREAM_PACKAGE}.ForkStep", repeated=True)
    _add_field(request, "include_filter_expr", 10, _F.TYPE_STRING)
    _add_field(request, "exclude_filter_expr", 11, _F.TYPE_STRING)
    _add_field(request, "start_cursor", 13, _F.TYPE_STRING)
    _add_field(request, "details", 15, _F.TYPE_ENUM, f".{BSTREAM_PACKAGE}.BlockDetails")

    response = proto.message_type.add(name="BlockResponseV2")
    _add_field(response, "block", 1, _F.TYPE_MESSAGE, ".google.protobuf.Any")
    _add_field(response, "step", 6, _F.TYPE_ENUM, f".{BSTREAM_PACKAGE}.ForkStep")
    _add_field(response, "cursor", 10, _F.TYPE_STRING)

    return proto


def _codec_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="dfuse/eosio/codec/v1/codec.proto",
        package=CODEC_PACKAGE,
        syntax="proto3",
    )
    proto.dependency.append("google/protobuf/timestamp.proto")

    header = proto.message_type.add(name="BlockHeader")
    _add_field(header, "timestamp", 3, _F.TYPE_MESSAGE, ".google.protobuf.Timestamp")
    _add_field(header, "producer", 4, _F.TYPE_STRING)
    _add_field(header, "previous", 6, _F.TYPE_STRING)

    block = proto.message_type.add(name="Block")
    _add_field(block, "id", 1, _F.TYPE_STRING)
    _add_field(block, "number", 2, _F.TYPE_UINT32)
    _add_field(block, "header", 4, _F.TYPE_MESSAGE, f".{CODEC_PACKAGE}.BlockHeader")

    return proto


def _register(*files: descriptor_pb2.FileDescriptorProto) -> None:
    pool = descriptor_pool.Default()
    for file_proto in files:
        try:
            pool.FindFileByName(file_proto.name)
        except KeyError:
            pool.AddSerializedFile(file_proto.SerializeToString())


def _message_class(full_name: str):
    descriptor = descriptor_pool.Default().FindMessageTypeByName(full_name)
    return message_factory.GetMessageClass(descriptor)


_register(_bstream_file(), _codec_file())

BlocksRequestV2 = _message_class(f"{BSTREAM_PACKAGE}.BlocksRequestV2")
BlockResponseV2 = _message_class(f"{BSTREAM_PACKAGE}.BlockResponseV2")
BlockHeader = _message_class(f"{CODEC_PACKAGE}.BlockHeader")
Block = _message_class(f"{CODEC_PACKAGE}.Block")
