from pnpy.pn.components import *
from pnpy.pn.pn_imp import PetriNet


# P1 --2--> T1 --1--> P2
net = PetriNet("chain")
net.add_token(Token("Default"))

p1 = Place("P1")
p2 = Place("P2")
t1 = Transition("T1")

net.add_place(p1, {"Default": 5})
net.add_place(p2, {"Default": 0})
net.add_transition(t1)
net.add_arc(Arc(p1, t1, {"Default": "2"}))
net.add_arc(Arc(t1, p2, {"Default": "1"}))
net.mark_enabled_transitions()

print(net)
print(net.marking)

print("Is T1 enabled?", net.is_enabled(t1))
print("Enabling degree of T1:", net.get_enabling_degree(t1))

net.fire_transition(t1)
print(net.marking)  # P1=3, P2=1

net.fire_transition_backwards(t1)
print(net.marking)  # back to P1=5, P2=0
