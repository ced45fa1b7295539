"""Timeline notes — command and handler."""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from production.domain import production
from production.order.order import ProductionOrder, load_order


@production.command(part_of="ProductionOrder")
class RecordTimelineNote:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20)
    note = Text(required=True)


@production.command_handler(part_of=ProductionOrder)
class TimelineNoteHandler:
    @handle(RecordTimelineNote)
    def record_note(self, command):
        order = load_order(command.order_id)
        entry = order.add_note(str(command.actor_id), command.note, actor_role=command.actor_role)
        current_domain.repository_for(ProductionOrder).add(order)
        return entry.sequence
