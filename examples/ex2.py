from pnpy.pn.components import *
from pnpy.pn.evaluation import EvaluationContext
from pnpy.pn.exporter import export_net_to_json
from pnpy.pn.pn_imp import PetriNet


user_code = """
def half(n):
    return n // 2
"""
context = EvaluationContext(user_code=user_code)

net = PetriNet("workshop", evaluator=context, parameters={"random_seed": 7})
net.add_token(Token("Part", colour="#1f77b4"))
net.add_token(Token("Defect", colour="#d62728"))

buffer = Place("Buffer")
done = Place("Done", capacity=10)
alarm = Place("Alarm")
net.add_place(buffer, {"Part": 6, "Defect": 1})
net.add_place(done)
net.add_place(alarm)

# assembling takes priority over inspecting, and stops while the alarm holds a defect
assemble = Transition("Assemble", priority=2)
inspect = Transition("Inspect", priority=1)
repair = Transition("Repair", timed=True, rate="0.5")
for t in (assemble, inspect, repair):
    net.add_transition(t)

net.add_arc(Arc(buffer, assemble, {"Part": "2"}))
net.add_arc(Arc(assemble, done, {"Part": "1"}))
net.add_arc(Arc(alarm, assemble, {"Defect": "1"}, arc_type=ArcType.INHIBITOR))
net.add_arc(Arc(buffer, inspect, {"Defect": "1"}))
net.add_arc(Arc(inspect, alarm, {"Defect": "1"}))
net.add_arc(Arc(alarm, repair, {"Defect": "1"}))
# functional weight, evaluated against the marking before the firing
net.add_arc(Arc(repair, buffer, {"Part": "half(Done)"}))
net.mark_enabled_transitions()

print("Enabled:", [t.id for t in net.get_enabled_transitions()])

while net.get_enabled_transitions():
    t = net.get_random_transition()
    print("Firing", t.id)
    net.fire_transition(t)
    print(net.marking)

export_net_to_json(net, output_json_path="ex2_exported.json", output_py_path="ex2_user_code.py")
print("Exported to ex2_exported.json")
